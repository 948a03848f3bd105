"""Core Application Layer: Orchestrates use cases.

Connects the domain layer with the infrastructure layer through interfaces.
Contains the client session, the paginated fetcher and the command handler.
"""
