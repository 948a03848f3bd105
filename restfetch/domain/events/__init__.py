"""Domain Events.

Simple dataclasses describing request lifecycle milestones.
"""
