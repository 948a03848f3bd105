"""Domain Layer: value objects, outcome types, errors and ports.

Has no dependency on HTTP or console libraries.
"""
