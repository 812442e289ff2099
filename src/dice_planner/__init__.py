"""Dice planner: minimum expected-throw strategies for simulating one die with another."""

__version__ = "0.1.0"
