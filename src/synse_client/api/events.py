"""Request and response event names of the Synse WebSocket API."""

REQUEST_STATUS = "request/status"
REQUEST_VERSION = "request/version"
REQUEST_CONFIG = "request/config"
REQUEST_PLUGIN = "request/plugin"
REQUEST_PLUGIN_HEALTH = "request/plugin_health"
REQUEST_SCAN = "request/scan"
REQUEST_TAGS = "request/tags"
REQUEST_INFO = "request/info"
REQUEST_READ = "request/read"
REQUEST_READ_DEVICE = "request/read_device"
REQUEST_READ_CACHE = "request/read_cache"
REQUEST_READ_STREAM = "request/read_stream"
REQUEST_WRITE_ASYNC = "request/write_async"
REQUEST_WRITE_SYNC = "request/write_sync"
REQUEST_TRANSACTION = "request/transaction"

RESPONSE_STATUS = "response/status"
RESPONSE_VERSION = "response/version"
RESPONSE_CONFIG = "response/config"
RESPONSE_PLUGIN_SUMMARY = "response/plugin_summary"
RESPONSE_PLUGIN_INFO = "response/plugin_info"
RESPONSE_PLUGIN_HEALTH = "response/plugin_health"
RESPONSE_DEVICE_SUMMARY = "response/device_summary"
RESPONSE_TAGS = "response/tags"
RESPONSE_DEVICE_INFO = "response/device_info"
RESPONSE_READING = "response/reading"
RESPONSE_TRANSACTION_INFO = "response/transaction_info"
RESPONSE_TRANSACTION_STATUS = "response/transaction_status"
RESPONSE_TRANSACTION_LIST = "response/transaction_list"
RESPONSE_ERROR = "response/error"

# Older servers name these responses after the resource rather than the view.
RESPONSE_PLUGIN = "response/plugin"
RESPONSE_DEVICE = "response/device"
RESPONSE_WRITE_STATE = "response/write_state"
