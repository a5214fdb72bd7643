# texus

texus collects spot market data from the OKX v5 REST API and keeps it in
Redis. The `texus` command runs these jobs side by side:

- **Tickers.** Every minute it fetches `/api/v5/market/tickers?instType=SPOT`,
  keeps the spot `-USDT` pairs that are on the watch list (the first five
  members of the Redis sorted set `tickersList|sortedSet`) and publishes each
  as JSON on the channel `tickerInfo|publish`.
- **Candle scheduling.** For each bar period (15m, 30m, 1H, 2H, 4H, 6H, 12H,
  1D, 2D, 5D) a loop waits until the clock, in epoch seconds modulo the
  schedule's period, equals its delay. It then spreads requests for the
  watched instruments over the schedule's duration and pushes them onto the
  Redis list `restQueue`. Each request asks for candles ending a random number
  of bars before the current minute.
- **Candle storage.** A worker pops `restQueue`, calls
  `/api/v5/market/candles`, and stores each candle row as JSON under a key such
  as `candle15m|BTC-USDT|ts:1700000000000`. The key expires after
  `sqrt(period in minutes) * 100` minutes. The key is added once, scored by its
  timestamp, to the sorted set `candle15m|BTC-USDT|sortedSet`; a companion
  `...|refer` key guards against adding it twice. Rows whose implied price
  (quote volume / volume) is not positive are skipped. Queue entries of the
  form `XYZ|position|key` are read as the pair `XYZ-USDT`; entries for `USDT`
  itself are dropped.
- **Log forwarding.** Each stored candle and each published ticker is posted
  as JSON to a Fluent Bit HTTP input at `http://<host>/<tag>`, with the tag
  `sardine.log.candle.<period>` or `sardine.log.ticker.<instId>`.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Running

```
texus
```

The command takes no options and runs until it is interrupted. At start it
logs the exchange's server time.

### Configuration

The configuration is read from `/go/json/basicConfig.json`, or, if that file
cannot be read, from `configs/basicConfig.json` in the working directory. The
file holds one section per environment; the section used is the one named by
the `GO_ENV` environment variable.

```json
{
  "demoEnv": {
    "redis": {"url": "localhost:6379", "password": "password", "index": 0},
    "connect": {
      "restBaseUrl": "https://www.okx.com",
      "wsPublicBaseUrl": "wss://ws.example.com/ws/v5/public",
      "wsPrivateBaseUrl": "wss://ws.example.com/ws/v5/private",
      "loginSubUrl": ""
    },
    "credentialReadOnly": {
      "okAccessKey": "placeholder",
      "secretKey": "secret",
      "okAccessPassphrase": "placeholder"
    }
  }
}
```

`texus.config.AppConfig.load()` reads the `redis`, `connect`,
`credentialReadOnly` and `credentialMutable` sections into dataclasses; the
service itself uses only the Redis settings and `connect.restBaseUrl`.

Environment variables:

| Variable | Meaning |
| --- | --- |
| `GO_ENV` | Selects the configuration section. With `demoEnv`, published channel names get a `-demoEnv` suffix. |
| `REDIS_URL` | Overrides the Redis address (`host:port`) from the configuration. |
| `TUNAS_CANDLESDIMENTIONS` | Candle periods separated by `\|`, for example `1m\|5m\|15m`; loaded into `AppConfig.candle_dimentions`. |
| `TEXUS_FluentBitUrl` | Host and port of the Fluent Bit HTTP input receiving log records. |
| `gitBranchName`, `gitCommitID` | Only logged at start. |

## Using it as a library

```python
from texus.candle import period_to_minutes, hash_string, RestQueue
from texus.okx.events import Event, get_event_id
from texus.okx.parsing import parse_message

period_to_minutes("4H")              # 240
get_event_id("index-candle30m")      # Event.BOOK_KLINE_INDEX
event, data = parse_message(b"pong") # (Event.PING, b"pong")
RestQueue(inst_id="BTC-USDT", bar="1H", limit="10").link()
# "/api/v5/market/candles?instId=BTC-USDT&bar=1H&limit=10"
```

Modules:

- `texus.core` — `Core`, which ties configuration, the Redis client and the
  public REST endpoints together; `Core.from_environment()` builds one the way
  the `texus` command does. It also has helpers such as `get_score_list`,
  `get_my_favor_list`, `subscribe_ticker` and `process_order` (which publishes
  an order on `private|order|publish`).
- `texus.candle` — `CandleStore` for writing candles and moving averages to
  Redis, plus `RestQueue`, `Candle`, `MaX`, `is_mod_of`, `key_expiry`.
- `texus.ticker`, `texus.private`, `texus.models` — ticker, balance, order and
  instrument records and their conversion from the exchange's string fields.
- `texus.writelog` — `WriteLog`, a record posted to Fluent Bit.
- `texus.utils` — `BoundedStack`, `compute_hmac256`, `iso_time`,
  `hash_dispatch`, conversion helpers and more.
- `texus.okx.events` — event, channel and period tables; `get_event_id`.
- `texus.okx.messages` — websocket request and response payloads.
- `texus.okx.depth` — order-book CRC32 checksums (`calc_crc32`) and depth
  merging (`merge_depth`, `merge_depth_data`, `DepthData.check_sum`).
- `texus.okx.parsing` — `parse_message` to classify server messages,
  `check_result` to judge replies to a request, and `DepthBook` to hold merged
  order books per channel.

## What it does not do

- It does not open websocket connections. The `texus.okx` modules build,
  parse and check protocol messages, but there is no client that connects,
  logs in, subscribes or feeds `DepthBook` from a live stream.
- It makes no signed REST calls: it does not read balances or pending orders
  and does not place, cancel or amend orders. Only public endpoints are
  called.