"""Connection string parsing for the NATS JetStream driver."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from kine.drivers import TLSConfig

log = logging.getLogger(__name__)

# Whether an embedded NATS server is available in this build.
EMBEDDED = False

DEFAULT_BUCKET = "kine"
DEFAULT_REPLICAS = 1
DEFAULT_REV_HISTORY = 10
DEFAULT_SLOW_METHOD = 0.5
DEFAULT_URL = "nats://127.0.0.1:4222"

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "\u00b5s": 1e-6,
    "\u03bcs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_COMPONENT = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|\u00b5s|\u03bcs|ms|s|m|h)")


@dataclass(frozen=True)
class ClientOption:
    """A NATS client connection option.

    ``kind`` is one of ``client_cert`` (cert, key), ``root_cas`` (ca file),
    ``user_credentials`` (creds file), ``user_info`` (user, password),
    ``token`` (token), ``nkey`` (seed file) or ``inbox_prefix`` (prefix).
    """

    kind: str
    args: tuple = ()


@dataclass
class NatsConfig:
    """Settings parsed from a NATS endpoint."""

    client_url: str = ""
    client_options: list[ClientOption] = field(default_factory=list)
    rev_history: int = DEFAULT_REV_HISTORY
    bucket: str = DEFAULT_BUCKET
    replicas: int = DEFAULT_REPLICAS
    slow_threshold: float = DEFAULT_SLOW_METHOD
    no_embed: bool = False
    dont_listen: bool = False
    server_config: str = ""
    stdout_logging: bool = False
    host: str = ""
    port: int = 0
    data_dir: str = ""


def parse_duration(text: str) -> float:
    """Parse a duration such as ``1h30m`` or ``500ms`` into seconds."""
    rest = text
    sign = 1.0
    if rest and rest[0] in "+-":
        sign = -1.0 if rest[0] == "-" else 1.0
        rest = rest[1:]
    if rest == "0":
        return 0.0
    if not rest:
        raise ValueError(f"invalid duration {text!r}")
    total = 0.0
    pos = 0
    while pos < len(rest):
        match = _COMPONENT.match(rest, pos)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        total += float(match[1]) * _UNITS[match[2]]
        pos = match.end()
    return sign * total


def _parse_uint8(text: str) -> Optional[int]:
    if not (text.isascii() and text.isdigit()):
        return None
    value = int(text)
    return value if value <= 255 else None


def _split_netloc(netloc: str) -> tuple[str, str]:
    """Return (userinfo, host) from a URL's network location."""
    userinfo, sep, host = netloc.rpartition("@")
    return (userinfo, host) if sep else ("", netloc)


def _hostname_and_port(host: str) -> tuple[str, str]:
    if host.startswith("["):
        name, _, rest = host[1:].partition("]")
        port = rest[1:] if rest.startswith(":") else ""
    else:
        name, sep, port = host.rpartition(":")
        if not sep:
            name, port = host, ""
    if port and not (port.isascii() and port.isdigit()):
        raise ValueError(f"invalid port {port!r} after host")
    return name, port


def _load_context(path: str) -> tuple[str, list[ClientOption]]:
    """Read a NATS context file; return its server URL and client options."""
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    options: list[ClientOption] = []
    if data.get("user"):
        options.append(ClientOption("user_info", (data["user"], data.get("password", ""))))
    elif data.get("creds"):
        options.append(ClientOption("user_credentials", (data["creds"],)))
    elif data.get("nkey"):
        options.append(ClientOption("nkey", (data["nkey"],)))
    if data.get("token"):
        options.append(ClientOption("token", (data["token"],)))
    if data.get("cert") and data.get("key"):
        options.append(ClientOption("client_cert", (data["cert"], data["key"])))
    if data.get("ca"):
        options.append(ClientOption("root_cas", (data["ca"],)))
    if data.get("inbox_prefix"):
        options.append(ClientOption("inbox_prefix", (data["inbox_prefix"],)))
    return data.get("url") or DEFAULT_URL, options


def parse_connection(dsn: str, tls_info: Optional[TLSConfig] = None) -> NatsConfig:
    """Parse a comma separated list of ``nats://`` URLs into a :class:`NatsConfig`."""
    tls_info = tls_info or TLSConfig()
    config = NatsConfig()

    connections = dsn.split(",")
    first = urlsplit(connections[0])
    _, first_host = _split_netloc(first.netloc)
    config.host, port = _hostname_and_port(first_host)
    if port:
        config.port = int(port)

    query = parse_qs(first.query, keep_blank_values=True)

    def get(name: str) -> str:
        values = query.get(name)
        return values[0] if values else ""

    if get("bucket"):
        config.bucket = get("bucket")

    replicas = _parse_uint8(get("replicas"))
    if replicas is not None:
        if not 1 <= replicas <= 5:
            raise ValueError("invalid replicas, must be >= 1 and <= 5")
        config.replicas = replicas

    slow = get("slowMethod")
    if slow:
        try:
            config.slow_threshold = parse_duration(slow)
        except ValueError as err:
            raise ValueError(f"invalid slowMethod duration: {err}") from err

    revs = _parse_uint8(get("revHistory"))
    if revs is not None:
        if not 2 <= revs <= 64:
            raise ValueError("invalid revHistory, must be >= 2 and <= 64")
        config.rev_history = revs

    if tls_info.key_file and tls_info.cert_file:
        config.client_options.append(
            ClientOption("client_cert", (tls_info.cert_file, tls_info.key_file))
        )
    if tls_info.ca_file:
        config.client_options.append(ClientOption("root_cas", (tls_info.ca_file,)))

    if get("credsFile"):
        config.client_options.append(ClientOption("user_credentials", (get("credsFile"),)))

    # A context file overrides the servers; explicit options take precedence.
    context_file = get("contextFile")
    if context_file:
        if first_host:
            raise ValueError("when using context endpoint no host should be provided")
        log.debug("loading nats context file: %s", context_file)
        server_url, context_options = _load_context(context_file)
        connections = server_url.split(",")
        config.client_options = context_options + config.client_options

    urls = []
    for index, connection in enumerate(connections):
        parsed = urlsplit(connection)
        if parsed.scheme != "nats":
            raise ValueError(f"invalid connection string={connection}")
        userinfo, host = _split_netloc(parsed.netloc)
        if userinfo and index == 0:
            parts = userinfo.split(":")
            if len(parts) > 1:
                config.client_options.append(ClientOption("user_info", (parts[0], parts[1])))
            else:
                config.client_options.append(ClientOption("token", (parts[0],)))
        urls.append("nats://" + host)
    config.client_url = ",".join(urls)

    if EMBEDDED:
        config.no_embed = "noEmbed" in query
        config.server_config = get("serverConfig")
        config.stdout_logging = "stdoutLogging" in query
        config.dont_listen = "dontListen" in query
        config.data_dir = get("dataDir")

    log.debug("using config %r", config)
    return config