"""Local Fly-style machine tooling: a multi-tenant service, a diagnostics service, an API walkthrough and todo building blocks."""

__version__ = "0.2.2"