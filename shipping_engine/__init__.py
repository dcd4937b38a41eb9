"""Shipping rate resolution and fulfillment lifecycle engine."""
