"""Bingo domain services.

Pure(ish) domain logic imported by HTTP routes and socket handlers, keeping
transport concerns separated from ticket evaluation and claim handling.
"""
