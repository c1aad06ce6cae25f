# logbroker

`logbroker` provides the building blocks of a publish/subscribe router built
around per-topic in-memory commit logs. Connections are reached through
bounded channels. They subscribe with MQTT-style topic filters (`+` and `#`
wildcards) and receive data and acknowledgements as notifications.

## Modules

- `logbroker.messages`: the packets (`Publish`, `Subscribe`, `PubAck`, …),
  the requests (`DataRequest`, `TopicsRequest`, `AcksRequest`), the
  notifications (`Data`, `Acks`, `Pause`, `ConnectionAck`, …), the events,
  and `RouterConfig`.
- `logbroker.connection`: `bounded(capacity)` channels (`Sender`, `Receiver`)
  and `Connection`. `Connection.notify` sends a notification and reports
  whether the connection should be unscheduled. When the channel is nearly
  full it also sends a `Pause`.
- `logbroker.slab`: `Slab`, fixed slots keyed by connection id. The first ten
  slots are reserved for replicators.
- `logbroker.readyqueue`: `ReadyQueue` of connections with requests to serve.
- `logbroker.waiters`: `Waiters` and `DataWaiters` hold requests that wait for
  new topics or new data.
- `logbroker.logs`: `AcksLog`, the segmented `MemoryLog`, `DataLog` (per-topic
  logs with retained publishes) and `TopicsLog`.
- `logbroker.tracker`: `Tracker` holds the subscriptions and pending requests
  of one connection. It also provides `matches(topic, filter)` and
  `has_wildcards(filter)`.
- `logbroker.sessions`: `ConnectionsLog` keeps the state of persistent
  sessions between connections.
- `logbroker.scheduler`: `Scheduler` serves data, topics and acks requests of
  connections and wakes up waiters (`connection_ready`,
  `fresh_data_notification`, `fresh_topics_notification`,
  `fresh_acks_notification`).
- `logbroker.state`: `State` is the QoS 1/2 session state of one client
  connection. It covers inflight publishes, packet id collisions and the
  puback/pubrec/pubrel/pubcomp flows.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Examples

Reading from a topic's commit log:

```python
from logbroker.logs import DataLog
from logbroker.messages import DataRequest

datalog = DataLog()
datalog.append("hello/world", b"payload")        # (True, (0, 0))
data = datalog.extract_data(DataRequest("hello/world", 1))
print(data.payload, data.cursor)                 # [b'payload'] (0, 1)
```

Serving a connection's acks through the scheduler:

```python
from logbroker.connection import Connection
from logbroker.logs import AcksLog
from logbroker.messages import RouterConfig
from logbroker.scheduler import Scheduler
from logbroker.tracker import Tracker

scheduler = Scheduler(RouterConfig(max_connections=10))
connection, rx = Connection.new_remote("client-1", True, 10)
connection_id = scheduler.connections.insert(connection)
scheduler.trackers.insert_at(Tracker(), connection_id)
scheduler.watermarks.insert_at(AcksLog(), connection_id)

scheduler.watermarks.get(connection_id).push_publish_ack(1, 1)
scheduler.connection_ready(connection_id, 10)
print(rx.try_recv())                             # Acks(packets=[PubAck(pkid=1)])
```

Matching topic filters:

```python
from logbroker.tracker import matches

matches("hello/1/world", "hello/+/world")        # True
matches("hello/1/world", "hello/#")              # True
matches("$SYS/info", "#")                        # False
```

## What this package does not do

The package has no router event loop that reads events from a channel and
dispatches them. It has no network listener or MQTT wire encoding, no local
publish/subscribe link, no HTTP metrics console and no command to start a
broker. To build a running broker, wire `Scheduler`, `ConnectionsLog` and
`State` together in your own code.