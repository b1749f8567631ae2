"""Dialectica: a two-player philosopher card game with host-authoritative netplay."""

__version__ = "0.1.0"
