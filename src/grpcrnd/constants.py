import os

APP_NAME = "grpcrnd"

# Logging
LOG_FILE = os.environ.get("GRPCRND_LOG_FILE", "error.log")
LOG_LEVEL = os.environ.get("GRPCRND_LOG_LEVEL", "error").lower()
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
OUTPUT_LOGGER = "grpcrnd.output"

# Value generation
MAX_STRING_LENGTH = 16
MAX_BYTES_LENGTH = 16
MAX_RECURSION_DEPTH = 8

# Reflection
REFLECTION_SERVICE_NAMES = (
    'grpc.reflection.v1alpha.ServerReflection',
    'grpc.reflection.v1.ServerReflection',
)

WELL_KNOWN_TYPES = (
    "google.protobuf.Timestamp",
    "google.protobuf.Duration",
    "google.protobuf.FieldMask",
    "google.protobuf.Struct",
    "google.protobuf.Value",
    "google.protobuf.ListValue",
    "google.protobuf.Empty",
    "google.protobuf.Any",
    "google.protobuf.BoolValue",
    "google.protobuf.StringValue",
    "google.protobuf.BytesValue",
    "google.protobuf.Int32Value",
    "google.protobuf.Int64Value",
    "google.protobuf.UInt32Value",
    "google.protobuf.UInt64Value",
    "google.protobuf.FloatValue",
    "google.protobuf.DoubleValue",
)

# Exit codes
EXIT_OK = 0
EXIT_FAILURE = 1
