"""Foundation layer: library errors and configuration."""
