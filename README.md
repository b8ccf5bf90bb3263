# simplesearch

A small HTTP service that searches a `products` index in Elasticsearch and
returns matching products as JSON.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Configuration

Unless `ENV` is `production` or `development`, timeouts, the service name and
the Elasticsearch transport settings are read from `config/local.yaml`,
relative to the working directory:

```yaml
read_timeout: 5s
write_timeout: 5s
idle_timeout: 30s
service_name: simplesearch
elasticsearch:
  transport:
    tls:
      tls_insecure: true
    tls_timeout: 10s
    idle_timeout: 30s
```

Durations are strings such as `250ms`, `1m30s` or `2h`, or plain integers
counting nanoseconds. Missing keys take zero or empty values. A malformed file
raises `simplesearch.config.ConfigError`.

How the settings are used:

- `read_timeout` is the socket timeout for each incoming connection
  (zero means none).
- `tls_insecure: true` turns off certificate verification towards
  Elasticsearch.
- `tls_timeout` is the connect timeout for requests to Elasticsearch.
- `write_timeout`, `idle_timeout` and the transport's `idle_timeout` are loaded
  into the configuration but the server does not apply them.

The listening address and Elasticsearch connection come from the environment:

| Variable      | Meaning                                                        |
|---------------|----------------------------------------------------------------|
| `ENV`         | `production` or `development`, or anything else for local      |
| `ADDRESS`     | `host:port` to listen on, e.g. `0.0.0.0:8080`                  |
| `ES_ADDRESS`  | Elasticsearch URL; `http://localhost:9200` when empty          |
| `ES_USERNAME` | Elasticsearch user                                             |
| `ES_PASSWORD` | Elasticsearch password                                         |

An empty `ADDRESS` listens on all interfaces on a port chosen by the system.

In the local environment the log goes to standard output from DEBUG upwards,
as `time=... level=... msg=... key=value` lines.

## Running

```
ADDRESS=0.0.0.0:8080 ES_ADDRESS=https://localhost:9200 \
ES_USERNAME=user ES_PASSWORD=password simplesearch
```

The server stops cleanly on SIGINT or SIGTERM, and also shuts down if it
fails to listen.

## Searching

Send a POST request with a JSON body to `/search`:

```json
{
  "search_for": "laptop",
  "filters": {"price_bottom": 100, "price_top": 2000}
}
```

Field names match case-insensitively. If both price filters are zero or
missing, the upper bound becomes 10,000,000. The query matches `search_for`
against the product name and leaves out products whose stock is zero.

Every reply has HTTP status 200; the outcome is in the body:

| Situation                         | Body                                                        |
|-----------------------------------|-------------------------------------------------------------|
| Products found                    | `{"message":"results","result":[...]}`                      |
| Nothing matched                   | `{"message":"none found","result":null}`                    |
| `search_for` empty or missing     | `{"message":"you must provide the desired search","result":null}` |
| Body not JSON or of a wrong shape | `{"code":400,"message":"Bad Request"}`                      |
| Search backend failed             | `{"code":500,"message":"Internal Server Error"}`            |
| Unknown path or method            | `{"code":404,"message":"Cannot GET /path"}`                 |

Each product carries `name`, `description`, `price`, `category`, `stock` and
`created_at` (an RFC 3339 time).

## Library use

The parts can be used on their own:

```python
from simplesearch.api import SearchRequest
from simplesearch.elastic import build_query, extract_products

query = build_query(SearchRequest.from_dict({"search_for": "phone"}))
products = extract_products({"hits": {"hits": [{"_source": {"name": "phone"}}]}})
```

- `simplesearch.config`: `load_config(envs, path)`, `parse_duration(text)`
  and the `Config` dataclasses.
- `simplesearch.api`: `SearchRequest`, `SearchFilters`, `SearchResponse`.
- `simplesearch.elastic`: `Product`, `build_query`, `extract_products`,
  `ElasticSearchService` and the `SearchError` family (`NoHitsError`,
  `EncodingError`, `DecodingError`, `ConversionError`).
- `simplesearch.service`: `SimpleSearchService`, which hands searches to a
  backend.
- `simplesearch.server`: `create_app(searcher, service_name)` builds the Flask
  application around any object with a `make_search(request)` method;
  `SearchServer` serves it on the configured address.
- `simplesearch.app`: `App.create()` wires everything together from the
  environment, and `App.run()` serves until a signal arrives.
- `simplesearch.jsonutil`: `json_encode(value)` and `json_decode(stream)`.
- `simplesearch.logger`: `new_logger(envs)`.

## What it does not do

- It does not create, map or fill the `products` index; the index must
  already exist in Elasticsearch.
- The `production` and `development` environments have no configuration file
  and no log output yet: they start from default settings and discard log
  records.