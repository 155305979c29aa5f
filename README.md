# minerkit

Core pieces of a mining node as a plain Python library, using only the
standard library.

## Modules

- `minerkit.commondata` – hex encoding and decoding (`hex_digit_value`,
  `from_hex`, `to_hex`, `to_hex_int`, `to_compact_hex`), big-endian integer
  packing (`to_big_endian`, `from_big_endian`, `to_compact_big_endian`,
  `bytes_required`), difficulty and target conversion
  (`target_from_difficulty`, `hashes_to_target`), unit formatting
  (`scaled_size`, `format_hashes`, `format_memory`), padding (`pad_left`,
  `pad_right`) and `set_env`. `from_hex` returns empty bytes on a bad
  character, or raises `BadHexCharacter` (a `MinerError`) when `strict=True`.
- `minerkit.fixedhash` – `FixedHash`, a fixed-size byte container with
  `from_int`, `from_hex`, `random`, ordering, `^ | & ~`, big-endian
  `increment`, `hex` and `abridged`; `Align` chooses how shorter or longer
  input is placed; `abridged_list` formats a list of hashes.
- `minerkit.log` – channel-tagged, coloured log lines (`cnote`, `cwarn`,
  `emit`, `Channel`). The module-level `SETTINGS` (a `LogSettings`) switches
  colours off, selects syslog-style prefixes or writes to stdout instead of
  stderr; `LogFlag` holds the verbosity bits.
- `minerkit.worker` – `Worker`, an abstract, restartable background thread.
  Subclasses implement `work_loop` and return from it once `should_stop()` is
  true; `start_working`, `stop_working`, `trigger_stop_working` and `close`
  (also via `with`) control it.
- `minerkit.stats` – telemetry dataclasses (`Telemetry`, `MinerTelemetry`,
  `SolutionStats`, `SensorReadings`, `DeviceInfo`), the `MinerBackend`
  protocol, and the reports `miner_stat1`, `miner_stat_detail`,
  `miner_stat_detail_per_miner` plus the HTML page `render_http_stat_detail`.
- `minerkit.rpc` – `ApiSession`, a JSON-RPC 2.0 handler (`process_request`,
  `handle_line`) with optional password authentication through the
  `api_authorize` method and a read-only mode. Errors are raised inside as
  `RpcError` and returned to the client as error objects.
- `minerkit.server` – `ApiServer`, a TCP endpoint serving one thread per
  client; `ApiConnection` answers newline-separated JSON-RPC requests and
  plain HTTP `GET /` or `GET /getstat1` requests on the same port.

## Examples

```python
from minerkit.commondata import target_from_difficulty, format_hashes, from_hex

target_from_difficulty(1.0)
# '0x00000000ffff0000000000000000000000000000000000000000000000000000'

format_hashes(31_500_000.0)
# '31.50 Mh'

from_hex("0x4142")
# b'AB'
```

```python
from minerkit.fixedhash import FixedHash

h = FixedHash.from_hex(4, "000000ff")
h.increment()
h.hex()  # '00000100'
```

Serving the monitoring API needs an object that implements `MinerBackend`:

```python
from minerkit.server import ApiServer

server = ApiServer("127.0.0.1", 3333, "", backend, "minerkit-0.1.0")
server.start()
# ... later
server.stop()
```

API methods: `miner_getstat1`, `miner_getstatdetail`, `miner_ping`,
`miner_getconnections`, `miner_getscramblerinfo`, and the state-changing
`miner_shuffle`, `miner_restart`, `miner_reboot`, `miner_addconnection`,
`miner_setactiveconnection`, `miner_removeconnection`,
`miner_setscramblerinfo`, `miner_pausegpu`, `miner_setverbosity`.

A negative port starts the server in read-only mode: the state-changing
methods answer with "Method not available". Port zero leaves it off. With a
non-empty password, every method other than `api_authorize` answers
"Authorization needed" until the client authorizes with
`{"params": {"psw": ...}}`.

## What it does not do

The package does no hashing, device detection, pool communication or job
handling, and has no command-line program. The reports and the API work on
whatever `MinerBackend` you pass in; providing the farm and pool connections
behind it is up to you.

## Running the tests

```
pip install -e .[test]
pytest
```