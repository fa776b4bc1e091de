"""Test fixtures for the addressbook model.

This package provides reusable test fixtures:
- entities: Person and Meeting factories plus pre-built examples
- model: Clocks, address books and model managers
"""
