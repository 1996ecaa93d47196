"""
SkySync Controllers

External surfaces over the gateway core.
"""
