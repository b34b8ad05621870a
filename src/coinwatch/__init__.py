"""Live price ticker service for a single cryptocurrency trading pair."""
