# flysim

`flysim` bundles a few small web applications and client helpers for
working with a local Fly-style Machines API:

- a multi-tenant item service with one SQLite database per tenant,
- a diagnostics service that reports what a machine sees of its
  environment, volume and database,
- a scripted walkthrough that creates, inspects and removes apps and
  machines through the Machines API,
- the building blocks of a todo application with accounts and per-user
  tenant provisioning.

## Installation

```
pip install flysim
```

For running the test suite:

```
pip install "flysim[test]"
pytest
```

## Commands

### `flysim-tenants`

Starts the multi-tenant service (`flysim.tenants.app`). Every tenant
gets its own SQLite database file `<tenant>.db` inside the database
directory, created and migrated on first use (tables `items` and
`tenant_info`).

The tenant of a request is taken, in this order, from the `X-Tenant`
header, from the subdomain in the `Host` header (`acme.example.com` →
`acme`; hosts with fewer than three labels and the label `www` are
ignored), or from a `/tenant/<name>/...` path; otherwise it is
`default`. Tenant names are reduced to letters, digits, `-` and `_`,
cut to 50 characters and lower-cased.

Configuration comes from the environment:

| Variable             | Default  | Meaning                              |
|----------------------|----------|--------------------------------------|
| `DATABASE_PATH`      | `./data` | Directory holding the tenant files   |
| `PORT`               | `8080`   | Port to listen on                    |
| `FLY_LITEFS_PRIMARY` | `true`   | Whether this node is the primary     |

An invalid `PORT` raises `ValueError`; a `FLY_LITEFS_PRIMARY` other
than `true` or `false` counts as `true`.

Routes:

| Route                         | Method | Answer                                              |
|-------------------------------|--------|-----------------------------------------------------|
| `/`                           | GET    | HTML list of tenants that have a database file      |
| `/health`                     | GET    | `OK`                                                |
| `/api/tenants`                | GET    | JSON list of tenant names                           |
| `/tenant/<tenant>`            | GET    | HTML page with the item count and latest 10 items   |
| `/tenant/<tenant>/items`      | GET    | HTML list of the request tenant's items             |
| `/tenant/<tenant>/items`      | POST   | Creates an item, answers 201 with it as JSON        |
| `/api/items`                  | GET    | JSON list of the request tenant's items, newest first |
| `/api/items`                  | POST   | Creates an item, answers 201 with it as JSON        |

A new item is posted as JSON with a string `name` and an optional
string `description`; anything else is answered with 422. Unexpected
errors are answered with 500 and `Internal server error: ...`.

```
DATABASE_PATH=/tmp/tenants PORT=8080 flysim-tenants
curl -H 'X-Tenant: acme' -X POST -H 'Content-Type: application/json' \
     -d '{"name": "first", "description": "hello"}' localhost:8080/api/items
```

### `flysim-production`

Starts the diagnostics service (`flysim.production`) on `PORT`
(default `8080`). Every answer carries
`Access-Control-Allow-Origin: *`.

- `/` and `/health`: status, app name, machine id, region, private and
  public IP (`unknown` when unset), port, and the `FLY_*`, `PORT` and
  `NODE_ENV` variables.
- `/secrets`: sorted names of variables that look like secrets (names
  containing `SECRET`, `KEY`, `TOKEN`, `PASSWORD` or `API`, plus
  `DATABASE_URL` and `DATABASE_PATH`), never their values.
- `/volumes`: the files in `/data` and the outcome of writing and
  removing a test file there.
- `/discover` and `/test-dns`: the `<app>.internal` and
  `<machine>.vm.<app>.internal` names. No lookup is made; every name
  in `/test-dns` is reported as resolved.
- `/database` and `POST /database/records?name=...`: the record count
  and record creation. These need `DATABASE_PATH` to name a directory
  that already holds a `production.db` file; the `records` table is
  created in it at start-up. Without `DATABASE_PATH` both answer 503.

```
PORT=8080 DATABASE_PATH=/tmp/litefs flysim-production
```

### `flysim-walkthrough`

Talks to a Machines API (default `http://localhost:4280/v1`, change it
with `--base-url`) and runs one of two scenarios:

- `basic`: creates the app `my-app`, launches a machine with a LiteFS
  mount and an HTTP service on port 8080, prints its state and private
  IP, stops it and deletes the machine and the app.
- `cluster`: creates the app `distributed-app` with one primary and two
  replica nodes, waits for Enter, then deletes them and the app.

```
flysim-walkthrough basic
flysim-walkthrough cluster --base-url http://localhost:4280/v1
```

A connection failure is printed as `error: ...` and the command exits
with status 1.

## Library use

```python
from flysim.tenants.config import Config
from flysim.tenants.app import create_app
from flysim.tenants.middleware import extract_tenant_id

config = Config.from_env({"DATABASE_PATH": "/tmp/tenants", "PORT": "9000"})
app = create_app(config)

extract_tenant_id({"Host": "acme.example.com"}, "/")   # "acme"
```

`flysim.tenants.db.TenantDatabases` caches one connection per tenant
(`get`, `list_tenants`, `close`, and use as a context manager);
`init_db_directory` creates the directory and returns such a cache.

```python
from flysim.walkthrough import MachinesClient, machine_request

client = MachinesClient("http://localhost:4280/v1")
client.create_app("my-app", "personal")
request = machine_request(
    "my-app-1",
    image="alpine:latest",
    env={"DATABASE_URL": "/litefs/db.sqlite"},
    mounts=[("sqlite_data", "/litefs")],
    size="shared-cpu-1x",
)
machine = client.create_machine("my-app", request)
client.stop_machine("my-app", machine["id"])
client.delete_machine("my-app", machine["id"])
client.delete_app("my-app")
```

Any answer outside the 2xx range raises `flysim.walkthrough.ApiError`,
which carries `status_code` and `text`.

### Todo application pieces

The `flysim.todo` package holds:

- `flysim.todo.errors`: `AppError` and its subclasses
  (`DatabaseError`, `AuthError`, `ValidationError`, `NotFoundError`,
  `UnauthorizedError`, `BadRequestError`, `InternalError`,
  `TenantProvisioningError`); `AppError.response()` returns the HTTP
  status and the message a client is shown.
- `flysim.todo.models`: the `User`, `UserApp`, `Todo`, `LoginForm`,
  `SignupForm`, `CreateTodoForm` and `SessionUser` records, the
  `AVAILABLE_REGIONS` mapping and `is_available_region`.
- `flysim.todo.auth`: scrypt password hashing (`hash_password`,
  `verify_password`) and session helpers working on any mutable
  mapping (`set_session_user`, `get_session_user`, `clear_session`,
  `require_user`).
- `flysim.todo.tenant`: `build_machine_request`,
  `provision_tenant_app` (API base from the `api_url` argument, else
  `FLYSIM_API_URL`, else `http://host.docker.internal:4280`) and
  `tenant_app_url`.

```python
from flysim.todo.auth import hash_password, verify_password, set_session_user, require_user
from flysim.todo.models import SessionUser

password = "password"
stored = hash_password(password)
verify_password(password, stored)          # True

session = {}
set_session_user(session, SessionUser(id="u1", email="alice@example.com"))
require_user(session).email                # "alice@example.com"
```

## What is not included

The todo pieces are not assembled into an application: there is no
todo web server, no login, signup or dashboard pages, and no storage
for users, todos or tenant apps. The package also contains no Machines
API server itself; `flysim-walkthrough` and `provision_tenant_app`
need one to be running elsewhere.