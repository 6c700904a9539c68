"""Storefront: pricing and order lifecycle engine."""
