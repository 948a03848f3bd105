"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the client to the outside world (HTTP, console, configuration
files) by implementing the interfaces defined in the domain layer.
"""
