"""Seller Radar: flags marketplace listings from target-country sellers."""
