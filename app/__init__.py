"""Logistics management backend."""
