"""Core data models for the dice planner."""
