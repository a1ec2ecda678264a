"""Page rendering through a headless browser."""
