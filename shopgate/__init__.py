"""Admission control and retry core for the shop order management backend."""
