# apigate

Building blocks for an API gateway, in plain Python:

- **Service discovery** (`apigate.sd.subscriber`, `apigate.sd.register`,
  `apigate.sd.dnssrv`): subscribers that provide the current set of backend
  hosts, a register mapping discovery names to subscriber factories, and a
  DNS SRV subscriber that resolves, weights and caches backend instances.
- **Load balancing** (`apigate.sd.loadbalancing`): round robin and random
  balancers over any subscriber.
- **HTTP client helpers** (`apigate.transport.client`): a request executor
  built on `urllib`, status handlers that turn unexpected backend status codes
  into exceptions, a GraphQL request extractor, and a hook that replaces a
  backend's HTTP client with a registered WSGI application.
- **HTTP server helpers** (`apigate.transport.server`): TLS context building,
  a WSGI server runner that stops cleanly, and a hook that wraps the server
  handler with registered wrappers.

The only runtime dependency is `dnspython`, used by the default SRV lookup.
Install the test extra (`pip install apigate[test]`) to run the tests with
pytest.

## Configuration objects

The package has no configuration classes of its own. Functions that take a
backend or service configuration read plain attributes from whatever object
they are given (a dataclass or `types.SimpleNamespace` works):

- backend: `host` (list of hosts), `sd_scheme`, `url_pattern`, `extra_config`
  (a dict keyed by namespace);
- service: `address`, `port`, `read_timeout`, `tls`, `client_tls`,
  `allow_insecure_connections`, `extra_config`;
- TLS section: `public_key`, `private_key`, `is_disabled`, `enable_mtls`,
  `min_version`, `max_version`, `cipher_suites`, `curve_preferences`,
  `ca_certs`, `disable_system_ca_pool`;
- client TLS section: the same version, cipher, curve and CA attributes plus
  `allow_insecure_connections` and `client_certs` (objects with
  `certificate` and `private_key`).

## Load balancing

```python
from apigate.sd.subscriber import FixedSubscriber
from apigate.sd.loadbalancing import new_round_robin_lb, new_random_lb, NoHostsError

hosts = FixedSubscriber(["http://10.0.0.1:8080", "http://10.0.0.2:8080"])

balancer = new_round_robin_lb(hosts)
print(balancer.host())   # each call moves on to the next host

random_balancer = new_random_lb(hosts)
print(random_balancer.host())

try:
    new_round_robin_lb(FixedSubscriber([])).host()
except NoHostsError:
    print("no hosts available")
```

A round robin balancer over a `FixedSubscriber` starts at a random position;
a `FixedSubscriber` with a single host gives a `StaticBalancer` that always
returns it. Errors raised by a subscriber's `hosts()` propagate from
`host()`. `new_balancer` uses round robin when the machine has one CPU and
random selection otherwise.

`SubscriberFunc` wraps a plain callable as a subscriber, and
`new_random_fixed_subscriber(hosts)` builds a `FixedSubscriber` in shuffled
order.

## Registering a discovery method

```python
from apigate.sd.register import get_register
from apigate.sd.subscriber import SubscriberFunc

get_register().register("static-pair", lambda cfg: SubscriberFunc(lambda: ["a", "b"]))
factory = get_register().get("static-pair")
```

Unknown names, and names stored with something that is not callable, fall
back to `fixed_subscriber_factory`, which serves the backend's `host` list.
`reset_register()` replaces the shared register with an empty one.

## DNS SRV discovery

`apigate.sd.dnssrv.register()` adds `subscriber_factory` to the register
under `NAMESPACE` (`"dns"`); it resolves the first of the backend's hosts.
`new(name)` uses `default_lookup` and `TTL` (30 seconds);
`new_detailed(name, lookup, ttl)` takes a custom lookup function returning
`SRV` records, and `new_detailed_with_scheme` also sets the URL scheme
(default `http`).

Only the records with the lowest priority are kept. They are ordered by
weight (highest first), target and port, and each host appears as often as
its weight after the weights are normalised and divided by their greatest
common divisor:

```python
from apigate.sd.dnssrv import compact

compact([25, 10000, 1000])   # [0, 10, 1]
```

With more than 100 instances the list is shuffled. A failed lookup keeps the
previously cached hosts. A `DNSSubscriber` refreshes in a background thread
every `ttl` seconds; call `close()`, or use it as a context manager, to stop
it.

## Sending requests

```python
from apigate.transport.client.executor import (
    HTTPRequest, default_http_request_executor, new_http_client,
)

execute = default_http_request_executor(new_http_client)
response = execute(HTTPRequest("GET", "http://localhost:8080/"))
print(response.status_code, response.text)
```

`HTTPClient.do` returns a response for any status code and raises only on
transport failures.

## Backend status handling

`apigate.transport.client.status` offers:

- `default_http_status_handler`: accepts 200 and 201, raises
  `InvalidStatusCodeError` otherwise;
- `error_http_status_handler`: raises `HTTPResponseError` with the status
  code (`status_code()`) and the body as its message;
- `detailed_http_status_handler(name)`: raises `NamedHTTPResponseError`,
  which also carries the backend `name()`;
- `no_op_http_status_handler`: accepts everything.

`get_http_status_handler(remote)` reads the backend's `extra_config` under
`NAMESPACE`: a non-empty `return_error_details` string selects the detailed
handler, otherwise `return_error_code: True` selects the error handler, and
anything else gives the default one.

## GraphQL requests

`get_options(extra_config)` reads the GraphQL section of a backend's extra
config (`query` or `query_path`, `operationName`, `type`, `method`,
`variables`); a missing section raises `NoConfigFoundError`, and methods other
than `GET` and `POST` become `POST`. `new(options)` returns an `Extractor`.
Variables written as `"{name}"` are filled from the request parameter with
the capitalised name (`Name`):

```python
from apigate.transport.client import graphql

options = graphql.get_options({graphql.NAMESPACE: {
    "type": "query",
    "query": "{ me { name } }",
    "variables": {"foo": "{foo}", "bar": "1234abc"},
}})
extractor = graphql.new(options)
extractor.body_from_params({"Foo": "foobar"})
# b'{"query":"{ me { name } }","variables":{"bar":"1234abc","foo":"foobar"}}'
extractor.query_from_params({"Foo": "foobar"})   # dict of query values
```

`body_from_body` and `query_from_body` take a readable JSON object body whose
keys override the configured variables.

## HTTP server

```python
import threading
from types import SimpleNamespace
from apigate.transport.server.server import run_server

def app(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [b"hello"]

stop = threading.Event()
run_server(SimpleNamespace(address="127.0.0.1", port=8080), app, stop)
```

`run_server(cfg, handler, stop_event, logger)` serves a WSGI application,
with TLS when `cfg.tls` is set and not disabled (mutual TLS with
`enable_mtls`). It raises `PublicKeyError` or `PrivateKeyError` when TLS is
on and a key path is missing, re-raises serving errors, and returns once
`stop_event` is set; without a stop event it serves until interrupted.
`new_server` builds the server without starting it, and `free_port()` returns
an unused local port.

`parse_tls_version`, `parse_curve_ids` and `parse_cipher_suites` fall back to
TLS 1.3, `DEFAULT_CURVES` and `DEFAULT_CIPHER_SUITES`.
`parse_tls_config` and `parse_client_tls_config` build `ssl.SSLContext`
objects, logging unreadable certificate files through the optional logger.
`init_http_default_transport(cfg, logger)` installs a `urllib` opener using
the client TLS settings; only its first call has an effect.
`default_to_http_error` maps any error to 500.

## Handler hooks

`apigate.transport.server.plugin.register_handler(name, factory)` registers a
wrapper factory called as `factory(extra, handler)`. `new(logger, next_run)`
returns a runner that, when the service's `extra_config` names wrappers under
`NAMESPACE` (a string or a list in `name`), applies them in order before
calling `next_run(cfg, handler, ...)`.

`apigate.transport.client.plugin.register_client(name, factory)` registers a
factory called as `factory(extra)` that returns a WSGI application.
`http_request_executor(logger, next_factory)` returns an executor factory
that, for a backend whose `extra_config` names a registered client, answers
requests by calling that application in process; otherwise it defers to
`next_factory`.

## What it does not do

- There is no command-line program and no configuration file loader: the
  caller builds the configuration objects.
- There is no endpoint routing, request proxying or response merging; the
  pieces here are meant to be assembled by the caller.
- Handler and client hooks are registered from Python code in the same
  process; nothing is loaded from plugin files on disk.