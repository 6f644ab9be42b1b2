"""check_riverbed configuration."""
