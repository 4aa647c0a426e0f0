"""Layover-aware itinerary ranking, mix-and-match composition and booking."""
