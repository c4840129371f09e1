"""Hydration Habit Ping package."""
