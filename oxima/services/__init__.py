"""Stateful services: configuration store, session mirror, access guard."""
