"""Configuration package for diaryvault.

All constants live in `config.settings`; import them from there
(e.g. `from config.settings import DEFAULT_ITERATIONS`).
"""
