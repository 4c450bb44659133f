# fabriclog

`fabriclog` reads fabric diagnostic logs and extracts three kinds of record from them:

- **nodes**: GUID, description, type, kind (`host`, `switch` or `unknown`), port count,
  class and base versions, system image GUID and port GUID
- **ports**: node GUID, port GUID, port number, LID, local port number, port and physical
  state, and active link width and speed
- **node info**: serial number, part number, revision and product name

Every record keeps the row it came from as a compact JSON string (`raw_json`).

The package also holds a small JSON HTTP application, built on Werkzeug, that answers
requests about stored logs, their nodes and ports, and their topology. The storage and the
topology builder behind it are not part of the package; see
[What the package does not do](#what-the-package-does-not-do).

## Installation

Install from a checkout with pip. The `test` extra adds pytest for running the test suite.

## Supported inputs

A log source can be a directory (read recursively), a `.zip`, `.tar`, `.tar.gz` / `.tgz`
or `.gz` file, or any other single file. Files whose content is blank are skipped.

Each file is parsed according to its name:

- **names containing `db_csv`**: sectioned CSV. A section starts with a `START_<NAME>` row
  and ends with a matching `END_<NAME>` row; the first remaining row of a section is its
  header. Rows whose first cell is empty, `#`, starts with `#`, or is `comment` / `comments`
  are skipped. A file with no sections is read as ordinary CSV. An unmatched or unclosed
  section raises `ParseError`.
- **`.csv` files**: a header row followed by data rows. The delimiter is `,`, or `;` when
  the first non-blank line holds more semicolons than commas. A value in a column without a
  header raises `ParseError`.
- **anything else**: `key: value` or `key=value` lines. A blank line or a line starting with
  `---` ends a record; lines starting with `#` are ignored; any other line that is not a
  pair raises `ParseError`.

Key names are compared without regard to case or to `_`, `-`, space, `.`, `/` and `\`, so
`node_guid`, `NodeGUID` and `node-guid` are the same key. Whether a record is a port, node
info or node is decided by the keys it holds and by the name of its file (or section).
Numeric fields accept decimal, `0x`, `0o`, `0b` and leading-zero octal forms within the
32-bit range; anything else raises `ParseError`.

After parsing, records without a node GUID are dropped, duplicate nodes, ports and node info
records are merged (later non-empty values win), and a node that appears only as the owner
of a port or info record is added with kind `unknown`. A source that yields no nodes raises
`ParseError`.

Limits, each raising `BadArgumentsError` when exceeded:

- 64 MiB per file
- 1000 files per source
- 128 MiB in total

## Parsing a log

```python
import logging

from fabriclog.engine import Engine
from fabriclog.errors import BadArgumentsError, NotFoundError, ParseError

engine = Engine("/srv/logs", logging.getLogger("fabriclog"))

try:
    parsed = engine.parse("cluster-dump.zip")
except NotFoundError:
    print("no such log")
except BadArgumentsError as exc:
    print("rejected:", exc)
except ParseError as exc:
    print("could not parse:", exc)
else:
    print(len(parsed.nodes), "nodes,", len(parsed.ports), "ports")
```

Paths are resolved inside the engine's data directory:

- A relative path is taken relative to the data directory.
- An absolute path equal to or under `/data` is mapped onto the data directory.
- A blank path, or any path that leads outside the data directory, raises
  `BadArgumentsError`.

`fabriclog.parser_service.ParserService` wraps any object with a `parse(path)` method (such
as `Engine`), refusing blank paths. Its settings (`log_level`, `parser_address`, `data_dir`)
can be read with `fabriclog.parser_config.load_parser_config`; the environment variables
`LOG_LEVEL`, `PARSER_ADDRESS` and `DATA_DIR` override the file.

The lower-level pieces are usable on their own: `fabriclog.archive.read_source`,
`fabriclog.dbcsv.parse_csv` / `parse_db_csv`, `fabriclog.sections.parse_key_value_sections`
and `fabriclog.sections.finalize_parsed_log`.

## Errors

All errors derive from `fabriclog.errors.FabricLogError`. The HTTP application maps them to
statuses with `fabriclog.handlers.http_status_from_error`:

| Error                    | HTTP status |
|--------------------------|-------------|
| `BadArgumentsError`      | 400         |
| `NotFoundError`          | 404         |
| `ConflictError`          | 409         |
| `UnavailableError`       | 503         |
| anything else, including `ParseError` and `UnsupportedFormatError` | 500 |

## The HTTP application

`fabriclog.service.AppService` coordinates three backends that you supply:

- a repository, which stores logs, nodes and ports (`fabriclog.ports.Repository`)
- a parser (`fabriclog.ports.Parser`)
- a topology provider (`fabriclog.ports.TopologyProvider`)

Each is a `typing.Protocol`; any object with the listed methods will do. `parse_log`
registers the log, parses it and stores the result; if parsing or storing fails the log is
marked failed through the repository and the error is raised again.

`fabriclog.app.create_app(logger, service, pingers, config)` returns the WSGI application,
wrapped in panic recovery, request logging and CORS middleware.
`fabriclog.app.serve(config, logger, service, pingers)` runs it with Werkzeug's server at
`config.http.address` until SIGINT or SIGTERM, then shuts down within
`config.http.shutdown_timeout` seconds.

Configuration is read from a YAML (or JSON) file by `fabriclog.config.load_config`. The
environment variables `LOG_LEVEL`, `LOG_FILE_PATH`, `APP_ADDRESS`, `APP_TIMEOUT`,
`APP_READ_HEADER_TIMEOUT`, `APP_SHUTDOWN_TIMEOUT`, `PARSER_GRPC_ADDRESS`,
`REPOSITORY_GRPC_ADDRESS` and `TOPOLOGY_GRPC_ADDRESS` override the file; durations are
written like `5s`, `250ms` or `1m30s`. If `PORT` is set, the server listens on `:<PORT>`.
`fabriclog.logger.create_logger` builds a logger that writes to stdout and appends to the
configured log file.

Routes:

| Method | Route                        | Returns                                   |
|--------|------------------------------|-------------------------------------------|
| GET    | `/healthz`                   | `ok` or `unavailable` for each pinger     |
| POST   | `/api/v1/parse`              | parses the log given as `{"path": "..."}` |
| GET    | `/api/v1/log/<log_id>`       | a stored log                              |
| GET    | `/api/v1/log/<log_id>/nodes` | the nodes of a log                        |
| GET    | `/api/v1/log/<log_id>/ports` | the ports of a log                        |
| GET    | `/api/v1/node/<node_id>`     | a node                                    |
| GET    | `/api/v1/port/<node_id>`     | the ports of a node                       |
| GET    | `/api/v1/topology/<log_id>`  | the topology of a log                     |

Identifiers must be positive integers. The parse request body must be a single JSON object
of at most 1 MiB with no fields other than `path`; a larger body gets 413 and an invalid one
400. Backend calls that take longer than `config.http.timeout` are answered with 503.

Query parameters on the port routes:

- `limit`: default 100, maximum 500
- `offset`: default 0

Raw records (`raw_json`) are included in node and port responses only when the query string
contains `include_raw=true`.

## What the package does not do

- It has no storage: logs, nodes and ports are kept only by the repository object you pass
  to `AppService`.
- It does not build topologies; it only relays what the topology provider returns.
- It has no network clients for remote parser, repository or topology services, and no
  network server for the parser. The address settings in the configuration are only carried
  and logged.
- It installs no command-line program; start the HTTP application from your own code with
  `fabriclog.app.serve`.