"""Prototype storage and nearest-prototype classification."""
