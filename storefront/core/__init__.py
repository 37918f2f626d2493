"""Network awareness, quote feed and conversion core."""
