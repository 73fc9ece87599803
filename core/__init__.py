"""Core package for the Katulong MCP host.

This package houses the primary host components:
- protocol: Request/response/error shapes and inbound decoding
- registry: Concurrent name -> document store for tools and resources
- dispatcher: Method dispatch for decoded requests
- session: Per-connection reader/writer pump and the shared connection set
- host: Facade wiring registries, connection set and dispatcher together
- control: Out-of-band registration surface used by the host shell
- config: Environment driven configuration
"""
