"""WebSocket message types exchanged with dashboard and public-order clients."""

# Client → server
JOIN = "join"
LEAVE = "leave"
REQUEST_CURRENT_MEMBERS = "request-current-members"
PING = "ping"

# Server → client
CONNECTION_ESTABLISHED = "connection_established"
JOINED = "joined"
LEFT = "left"
CURRENT_MEMBERS = "current-members"
PARTITION_CHANGED = "partition-changed"
DATA_CHANGED = "data-changed"
PONG = "pong"
ERROR = "error"
