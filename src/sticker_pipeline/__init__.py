"""Sticker asset pipeline: optimize staged images and build upload manifests."""

__version__ = "0.1.0"
