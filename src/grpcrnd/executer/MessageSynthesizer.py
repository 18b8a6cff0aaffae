from enum import Enum
from datetime import datetime, timezone
from google.protobuf.descriptor import Descriptor, FieldDescriptor
from typing import Dict, Any
from grpcrnd.executer.ValueGenerator import ValueGenerator
from grpcrnd.constants import MAX_RECURSION_DEPTH, WELL_KNOWN_TYPES

MAX_TIMESTAMP_SECONDS = 253402300799  # 9999-12-31T23:59:59Z


class FieldKind(Enum):
    DOUBLE = "double"
    FLOAT = "float"
    INT32 = "int32"
    INT64 = "int64"
    UINT32 = "uint32"
    UINT64 = "uint64"
    BOOL = "bool"
    BYTES = "bytes"
    STRING = "string"
    MESSAGE = "message"
    ENUM = "enum"
    UNHANDLED = "unhandled"

    @classmethod
    def of(cls, field: FieldDescriptor) -> "FieldKind":
        return FIELD_KINDS.get(field.type, cls.UNHANDLED)


FIELD_KINDS = {
    FieldDescriptor.TYPE_DOUBLE: FieldKind.DOUBLE,
    FieldDescriptor.TYPE_FLOAT: FieldKind.FLOAT,
    FieldDescriptor.TYPE_INT32: FieldKind.INT32,
    FieldDescriptor.TYPE_SINT32: FieldKind.INT32,
    FieldDescriptor.TYPE_SFIXED32: FieldKind.INT32,
    FieldDescriptor.TYPE_INT64: FieldKind.INT64,
    FieldDescriptor.TYPE_SINT64: FieldKind.INT64,
    FieldDescriptor.TYPE_SFIXED64: FieldKind.INT64,
    FieldDescriptor.TYPE_UINT32: FieldKind.UINT32,
    FieldDescriptor.TYPE_FIXED32: FieldKind.UINT32,
    FieldDescriptor.TYPE_UINT64: FieldKind.UINT64,
    FieldDescriptor.TYPE_FIXED64: FieldKind.UINT64,
    FieldDescriptor.TYPE_BOOL: FieldKind.BOOL,
    FieldDescriptor.TYPE_BYTES: FieldKind.BYTES,
    FieldDescriptor.TYPE_STRING: FieldKind.STRING,
    FieldDescriptor.TYPE_MESSAGE: FieldKind.MESSAGE,
    FieldDescriptor.TYPE_ENUM: FieldKind.ENUM,
    # TYPE_GROUP stays UNHANDLED
}


class MessageSynthesizer:
    """Builds a value tree for a message descriptor.

    Every field gets one entry keyed by its JSON name. Labels are ignored, so
    repeated and map fields are synthesized as a single value; oneof members
    are synthesized like any other field. Nested messages past
    ``max_depth`` are emitted as an empty tree.
    """

    def __init__(self, generator: ValueGenerator = None, max_depth: int = MAX_RECURSION_DEPTH):
        self.generator = generator if generator is not None else ValueGenerator()
        self.max_depth = max_depth
        self.handlers = {
            FieldKind.DOUBLE: lambda field, depth: self.generator.double(),
            FieldKind.FLOAT: lambda field, depth: self.generator.float(),
            FieldKind.INT32: lambda field, depth: self.generator.int32(),
            FieldKind.INT64: lambda field, depth: self.generator.int64(),
            FieldKind.UINT32: lambda field, depth: self.generator.uint32(),
            FieldKind.UINT64: lambda field, depth: self.generator.uint64(),
            FieldKind.BOOL: lambda field, depth: self.generator.bool(),
            FieldKind.BYTES: lambda field, depth: self.generator.bytes(),
            FieldKind.STRING: lambda field, depth: self.generator.string(),
            FieldKind.MESSAGE: self._message_value,
            FieldKind.ENUM: self._enum_value,
            FieldKind.UNHANDLED: None,
        }
        well_known = {
            "Timestamp": self._timestamp,
            "Duration": lambda: f"{self.generator.uint32() % 1000000}s",
            "FieldMask": lambda: "",
            "Struct": dict,
            "Value": self.generator.string,
            "ListValue": list,
            "Empty": dict,
            "Any": dict,
            "BoolValue": self.generator.bool,
            "StringValue": self.generator.string,
            "BytesValue": self.generator.bytes,
            "Int32Value": self.generator.int32,
            "Int64Value": self.generator.int64,
            "UInt32Value": self.generator.uint32,
            "UInt64Value": self.generator.uint64,
            "FloatValue": self.generator.float,
            "DoubleValue": self.generator.double,
        }
        # keyed off the shared list so the converter skips exactly these types
        self.well_known_values = {name: well_known[name.rpartition(".")[2]] for name in WELL_KNOWN_TYPES}

    def synthesize(self, msg_descriptor: Descriptor) -> Dict[str, Any]:
        return self._retrieve_fields(msg_descriptor.fields, 0)

    def _retrieve_fields(self, fields, depth: int) -> Dict[str, Any]:
        tree = {}
        for field in fields:
            handler = self.handlers[FieldKind.of(field)]
            if handler is None:
                # groups and unknown kinds are left out
                continue
            tree[field.json_name] = handler(field, depth)
        return tree

    def _message_value(self, field: FieldDescriptor, depth: int):
        message_type = field.message_type
        if message_type.full_name in self.well_known_values:
            return self.well_known_values[message_type.full_name]()
        if depth + 1 >= self.max_depth:
            return {}
        return self._retrieve_fields(message_type.fields, depth + 1)

    def _enum_value(self, field: FieldDescriptor, depth: int) -> int:
        values = field.enum_type.values
        return values[self.generator.pick_enum(len(values))].number

    def _timestamp(self) -> str:
        seconds = self.generator.rng.randint(0, MAX_TIMESTAMP_SECONDS)
        return datetime.fromtimestamp(seconds, timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')
