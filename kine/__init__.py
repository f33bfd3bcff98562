"""Driver registry, NATS key codec and connection parsing, revision index, backend logging and a broadcaster."""

__version__ = "0.1.0"