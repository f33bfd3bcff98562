"""Driver configuration, registry and factory."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Tuple

log = logging.getLogger(__name__)


@dataclass
class TLSConfig:
    """Files and options for TLS connections."""

    ca_file: str = ""
    cert_file: str = ""
    key_file: str = ""
    skip_verify: bool = False


@dataclass
class ConnectionPoolConfig:
    """Database connection pool limits.

    ``max_idle`` of zero means the default; negative means none retained.
    ``max_open`` of zero or less means unlimited. ``max_lifetime`` is in
    seconds; zero or less means no limit.
    """

    max_idle: int = 0
    max_open: int = 0
    max_lifetime: float = 0.0


@dataclass
class Config:
    """Settings handed to a driver constructor."""

    endpoint: str = ""
    scheme: str = ""
    data_source_name: str = ""
    connection_pool_config: ConnectionPoolConfig = field(default_factory=ConnectionPoolConfig)
    backend_tls_config: TLSConfig = field(default_factory=TLSConfig)
    metrics_registerer: Any = None


Constructor = Callable[[Config], Tuple[bool, Any]]


class UnknownDriverError(LookupError):
    """Raised when no driver is registered for an endpoint's scheme."""

    def __init__(self, scheme: str = "") -> None:
        super().__init__("unknown driver" + (f": {scheme}" if scheme else ""))
        self.scheme = scheme


class DriverUnavailableError(RuntimeError):
    """Raised when a registered scheme has no backend in this build."""

    def __init__(self, scheme: str) -> None:
        super().__init__(f"this build is without {scheme} support")
        self.scheme = scheme


@dataclass
class _Registry:
    drivers: dict = field(default_factory=dict)
    default_scheme: str = ""


_registry = _Registry()


def register(scheme: str, constructor: Constructor) -> None:
    """Register a constructor for the given scheme."""
    _registry.drivers[scheme] = constructor


def set_default(scheme: str) -> None:
    """Set the scheme used when no endpoint is given."""
    _registry.default_scheme = scheme
    log.debug("Default driver set to %s", scheme)


def get_default() -> Optional[Constructor]:
    """Return the default driver constructor, or None."""
    return _registry.drivers.get(_registry.default_scheme)


def get(scheme: str) -> Optional[Constructor]:
    """Return the constructor registered for ``scheme``, or None."""
    log.info("DriverRegistry: %s", sorted(_registry.drivers))
    return _registry.drivers.get(scheme)


def validate_dsn_uri(endpoint: str) -> None:
    """Ensure the endpoint has the form ``<scheme>://<authority>``."""
    if "://" not in endpoint:
        raise ValueError(
            "invalid datastore endpoint; endpoint should be a DSN URI in the format "
            "<scheme>://<authority>"
        )


def scheme_and_address(endpoint: str) -> tuple[str, str]:
    """Split an endpoint into its scheme and the rest."""
    scheme, sep, address = endpoint.partition("://")
    if not sep:
        return "", endpoint
    return scheme, address


def new(cfg: Config) -> tuple[bool, Any]:
    """Build the backend described by ``cfg``; returns (leader_elect, backend)."""
    if not cfg.endpoint:
        driver = get_default()
        if driver is None:
            raise LookupError("no default driver found")
        return driver(cfg)

    validate_dsn_uri(cfg.endpoint)
    cfg.scheme, cfg.data_source_name = scheme_and_address(cfg.endpoint)
    log.info("Using driver %s", cfg.scheme)
    driver = get(cfg.scheme)
    if driver is None:
        raise UnknownDriverError(cfg.scheme)
    return driver(cfg)


def http_driver(cfg: Config) -> tuple[bool, Any]:
    """Driver for http(s) endpoints: leader election with no local backend."""
    log.debug("Using remote endpoint %s", cfg.endpoint or cfg.data_source_name)
    leader_elect = True
    return leader_elect, None


def dqlite_driver(cfg: Config) -> tuple[bool, Any]:
    """Driver for dqlite endpoints; always raises, as dqlite is not available."""
    raise DriverUnavailableError(cfg.scheme or "dqlite")


register("http", http_driver)
register("https", http_driver)
register("dqlite", dqlite_driver)