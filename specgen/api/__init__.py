"""
SpecGen HTTP API (FastAPI).
"""
