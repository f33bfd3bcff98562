# kine

Building blocks for a small key/value store that follows the data model of
etcd v3: revisioned keys with creates, updates, deletes and leases. The
package provides the driver registry, the key encoding and connection
parsing for a NATS JetStream style bucket, an in-memory revision index,
a logging wrapper for backends and a broadcaster for fanning out events.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `kine.drivers` – driver configuration and registry.
  - `Config`, `TLSConfig` and `ConnectionPoolConfig` are dataclasses holding
    the endpoint, TLS files and pool limits handed to a driver.
  - `register(scheme, constructor)`, `set_default(scheme)`, `get_default()`
    and `get(scheme)` manage constructors by URI scheme. A constructor takes
    a `Config` and returns `(leader_elect, backend)`.
  - `new(cfg)` uses the default driver when `cfg.endpoint` is empty;
    otherwise it checks the endpoint with `validate_dsn_uri` (raising
    `ValueError` unless it contains `://`), splits it with
    `scheme_and_address` into `cfg.scheme` and `cfg.data_source_name`, and
    calls the registered constructor, raising `UnknownDriverError` for an
    unregistered scheme and `LookupError` when no default is set.
  - `http` and `https` are registered to `http_driver`, which returns
    `(True, None)`. `dqlite` is registered to `dqlite_driver`, which always
    raises `DriverUnavailableError`.
- `kine.nats_codec` – `KeyCodec` turns `/a/b` keys into Base58 tokens joined
  by `.` (`encode`, `decode`, `encode_range`); an empty key raises
  `InvalidKeyError`. `b58encode` and `b58decode` use the Bitcoin alphabet.
- `kine.nats_config` – `parse_connection(dsn, tls_info)` reads a comma
  separated list of `nats://` URLs into a `NatsConfig`. Query options on the
  first URL: `bucket`, `replicas` (1–5), `revHistory` (2–64), `slowMethod`
  (a duration such as `500ms`, parsed by `parse_duration` into seconds),
  `credsFile` and `contextFile` (a JSON context file providing the server
  URLs and credentials). A user and password or a token in the first URL,
  and the TLS files, become `ClientOption` entries. Out-of-range values and
  non-`nats` schemes raise `ValueError`.
- `kine.nats_index` – `RevisionIndex` keeps, per key and in key order, the
  last `history` updates (`SeqOp`: sequence, `KeyValueOp`, optional expiry).
  `record` adds an update, `bucket_revision` returns the last sequence,
  and `count` and `list` answer prefix queries from a start key, as of a
  revision, skipping deleted and expired keys.
- `kine.nats_logger` – `BackendLogger` wraps any backend object and logs each
  `get`, `create`, `delete`, `list`, `count` and `update` call with its
  result and duration, as a warning when it takes longer than `threshold`
  seconds. `compact` returns the given revision unchanged.
- `kine.broadcaster` – `Broadcaster.subscribe(connect)` starts the source
  returned by `connect()` on first use and copies every item to each
  `Subscription`. A subscription is iterable, holds up to 100 buffered
  items, is dropped if it falls behind, and can be closed or used as a
  context manager.

## Examples

```python
from kine.nats_codec import KeyCodec

codec = KeyCodec()
codec.encode("/a/a")        # "2g.2g"
codec.decode("2g.2g")       # "/a/a"
codec.encode_range("/")     # ">"
```

```python
from kine.drivers import Config, register, new

register("memory", lambda cfg: (False, object()))
leader_elect, backend = new(Config(endpoint="memory://local"))
```

```python
from kine.nats_index import KeyValueOp, RevisionIndex

index = RevisionIndex()
index.record("/a", 1)
index.record("/b", 2)
index.record("/a", 3, KeyValueOp.DELETE)
index.list("/")               # [("/b", 2)]
index.list("/", revision=2)   # [("/a", 1), ("/b", 2)]
```

## What this package does not do

There is no server and no command to run: nothing here answers etcd
requests or listens on a port. The package has no storage backend of its
own — no SQL tables and no connection to a NATS server; `parse_connection`
only describes how to connect, and `RevisionIndex` only indexes the updates
it is given. Apart from `http`/`https`, no driver is registered, so
`new` needs a constructor registered by the caller.