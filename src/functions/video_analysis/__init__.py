"""Video analysis function: coaching analysis of lacrosse film via Gemini."""
