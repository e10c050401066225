"""Static browser page for paragraph-by-paragraph generation."""
