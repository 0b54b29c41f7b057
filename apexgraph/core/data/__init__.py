"""Static data shipped with the package (the min-SDK allow-list)."""
