# blegatt

A Bluetooth Low Energy GATT (Generic Attribute Profile) toolkit in pure Python,
with no dependencies outside the standard library.

You describe services, characteristics and descriptors, turn them into an
attribute table, and let a `Central` answer ATT requests that arrive over any
byte connection: anything with `read(size)`, `write(data)` and `close()`.
It also builds and parses advertising data.

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Modules

- `blegatt.att`: `UUID` (little-endian bytes in `raw`, printed big-endian hex),
  `uuid16`, `parse_uuid`, ATT opcodes, `AttEcode`, `ecode_message`, `AttErr`
  and `att_error_rsp`.
- `blegatt.known`: names of assigned UUIDs and the `register_*` functions.
- `blegatt.model`: `Property`, `Request`, `ReadRequest`, `Service`,
  `Characteristic`, `Descriptor`.
- `blegatt.attr`: `Attr`, `AttrRange` and `generate_attributes`.
- `blegatt.l2cap`: `L2capWriter`, which builds responses bounded by the MTU.
- `blegatt.server`: `Central`, `ResponseWriter`, `Notifier`, `Security`.
- `blegatt.adv`: `AdvPacket`, `Advertisement`, `ServiceData`,
  `AdvertisingDataError`.
- `blegatt.device`: `State`, `DeviceHandlers` and the handler factories
  `central_connected`, `central_disconnected`, `peripheral_discovered`,
  `peripheral_connected`, `peripheral_disconnected`.
- `blegatt.services`: sample services.

## Building a service

```python
from blegatt.att import parse_uuid
from blegatt.model import Service

svc = Service(parse_uuid("09fc95c0-c111-11e3-9904-0002a5d5c51b"))

def read_count(resp, req):
    resp.write(b"count: 1")

svc.add_characteristic(parse_uuid("11fac9e0-c111-11e3-9246-0002a5d5c51b")).handle_read(read_count)

def on_write(request, data):
    print("wrote", data)
    return 0

svc.add_characteristic(parse_uuid("16fe0d80-c111-11e3-b8c8-0002a5d5c51b")).handle_write(on_write)
```

A characteristic serves either a static value (`set_value`) or a read handler
(`handle_read`); setting both raises `ValueError`, as does adding a second
characteristic or descriptor with the same UUID. `handle_notify(handler)` adds
a Client Characteristic Configuration descriptor; when a central enables
notifications the handler is started in a background thread with a `Notifier`,
whose `write` sends a notification until `done()` becomes true.

Ready-made services live in `blegatt.services`: `new_gap_service(name)`,
`new_gatt_service()`, `new_battery_service()` and `new_count_service()`.

## Serving requests

```python
from blegatt.attr import generate_attributes
from blegatt.server import Central
from blegatt.services import new_gap_service, new_gatt_service

attrs = generate_attributes([new_gap_service("Gopher"), new_gatt_service(), svc], 1)
central = Central(attrs, bytes(6), conn)
central.loop()  # reads requests from conn and writes responses until it closes
```

`Central.handle_request(data)` answers a single raw ATT request and returns the
response bytes, or `None` for a write command. Supported requests are Exchange
MTU (clamped to 23..256), Find Information, Find By Type Value (primary
services), Read By Type, Read, Read Blob, Read By Group Type (primary
services), Write Request and Write Command; others get a "request not
supported" error response, and truncated requests an "invalid PDU" one.

## Advertising data

```python
from blegatt.adv import AdvPacket, Advertisement
from blegatt.att import uuid16

packet = AdvPacket(b"")
packet.append_flags(0x06)
packet.append_uuid_fit([uuid16(0x180F)])
packet.append_name("Gopher")
payload = packet.to_bytes()  # always 31 bytes; len(packet) is the used part

adv = Advertisement()
adv.unmarshal(payload[: len(packet)])
print(adv.local_name, adv.services)
```

Fields that would overflow the 31-byte packet are truncated; a name that does
not fit is written as a shortened name. Malformed data passed to `unmarshal`
raises `AdvertisingDataError`.

## Names of well-known UUIDs

`blegatt.known` resolves assigned numbers to names (`service_name`,
`characteristic_name`, `descriptor_name`, `attribute_name`, each returning
`""` when unknown) and lets you add your own with the matching `register_*`
functions.

## What it does not do

blegatt does not talk to a Bluetooth controller. It opens no HCI or L2CAP
sockets, does not advertise, scan or connect on a radio, and has no client
side for discovering or reading a remote peripheral's services. You supply the
connection that `Central` serves and send the advertising bytes yourself;
`DeviceHandlers` only holds callbacks for code that does.