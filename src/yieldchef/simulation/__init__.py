"""Seeded simulations of user activity against a wired farm."""
