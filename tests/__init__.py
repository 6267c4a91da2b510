"""DinnerMatch test suite."""
