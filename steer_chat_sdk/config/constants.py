"""
Wire and telemetry constants.

Attribute, metric and event names follow the OpenTelemetry GenAI semantic
conventions so that any OpenTelemetry backend can interpret them.
"""

# Server-sent event payload that terminates a chat completion stream
STREAM_TERMINAL_DATA = "[DONE]"

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TIMEOUT_SECONDS = 60.0
CHAT_COMPLETIONS_PATH = "/chat/completions"
EMBEDDINGS_PATH = "/embeddings"

# Operation names
CHAT_OPERATION_NAME = "chat"
EMBEDDING_OPERATION_NAME = "embedding"

# Instrumentation scope
INSTRUMENTATION_NAME = "steer_chat_sdk.ChatClient"

# Span / metric attributes
ERROR_TYPE_KEY = "error.type"
SERVER_ADDRESS_KEY = "server.address"
SERVER_PORT_KEY = "server.port"

GEN_AI_SYSTEM_KEY = "gen_ai.system"
GEN_AI_SYSTEM_VALUE = "openai"
GEN_AI_OPERATION_NAME_KEY = "gen_ai.operation.name"
GEN_AI_REQUEST_MODEL_KEY = "gen_ai.request.model"
GEN_AI_REQUEST_MAX_TOKENS_KEY = "gen_ai.request.max_tokens"
GEN_AI_REQUEST_TEMPERATURE_KEY = "gen_ai.request.temperature"
GEN_AI_REQUEST_TOP_P_KEY = "gen_ai.request.top_p"
GEN_AI_RESPONSE_ID_KEY = "gen_ai.response.id"
GEN_AI_RESPONSE_MODEL_KEY = "gen_ai.response.model"
GEN_AI_RESPONSE_FINISH_REASONS_KEY = "gen_ai.response.finish_reasons"
GEN_AI_USAGE_INPUT_TOKENS_KEY = "gen_ai.usage.input_tokens"
GEN_AI_USAGE_OUTPUT_TOKENS_KEY = "gen_ai.usage.output_tokens"
GEN_AI_TOKEN_TYPE_KEY = "gen_ai.token.type"

# Metrics
GEN_AI_CLIENT_OPERATION_DURATION_METRIC = "gen_ai.client.operation.duration"
GEN_AI_CLIENT_TOKEN_USAGE_METRIC = "gen_ai.client.token.usage"
GEN_AI_CLIENT_STREAMS_STARTED_METRIC = "gen_ai.client.streams.started"
GEN_AI_CLIENT_STREAMS_COMPLETED_METRIC = "gen_ai.client.streams.completed"

# Events
GEN_AI_SYSTEM_MESSAGE_EVENT = "gen_ai.system.message"
GEN_AI_USER_MESSAGE_EVENT = "gen_ai.user.message"
GEN_AI_ASSISTANT_MESSAGE_EVENT = "gen_ai.assistant.message"
GEN_AI_TOOL_MESSAGE_EVENT = "gen_ai.tool.message"
GEN_AI_FUNCTION_MESSAGE_EVENT = "gen_ai.function.message"
GEN_AI_CHOICE_EVENT = "gen_ai.choice"
GEN_AI_EVENT_PAYLOAD_KEY = "event.data"

# error.type values that do not come from an exception
CANCELLED_ERROR_TYPE = "cancelled"
INCOMPLETE_RESPONSE_ERROR_TYPE = "error"

REDACTED_CONTENT = "REDACTED"
