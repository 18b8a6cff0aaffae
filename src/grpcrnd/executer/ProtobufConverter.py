import base64
import json
from google.protobuf import json_format
from google.protobuf.descriptor import Descriptor, FieldDescriptor
from google.protobuf.message import Message
from google.protobuf.message_factory import GetMessageClass
from google.rpc import error_details_pb2  # noqa: F401  registers rich status detail types
from typing import Any, Dict
from grpcrnd.constants import WELL_KNOWN_TYPES
from grpcrnd.executer.errors import BuildError


class ProtobufConverter:
    """Binds synthesized value trees to messages and renders messages as JSON."""

    @classmethod
    def to_protobuf(cls, value_tree: Dict[str, Any], msg_descriptor: Descriptor) -> Message:
        """Convert a value tree to a message of the given type.

        The tree is first reshaped against the descriptor (see ``conform``),
        encoded to JSON and then parsed back with unknown fields ignored.

        Raises:
            BuildError: with ``stage`` set to ``"encode"`` or ``"decode"``.
        """
        try:
            text = json.dumps(cls.conform(value_tree, msg_descriptor), default=cls._encode_default)
        except (TypeError, ValueError) as e:
            raise BuildError("encode", f"failed to create param json: {e}") from e

        msg = GetMessageClass(msg_descriptor)()
        try:
            json_format.Parse(text, msg, ignore_unknown_fields=True)
        except json_format.ParseError as e:
            raise BuildError("decode", f"failed to unmarshal to protobuf json: {e}") from e
        return msg

    @classmethod
    def conform(cls, value_tree: Dict[str, Any], msg_descriptor: Descriptor) -> Dict[str, Any]:
        """Reshape a singular-valued tree so it binds to ``msg_descriptor``.

        Repeated fields get a one element list, map fields turn their
        ``{"key": k, "value": v}`` entry into ``{k: v}`` and only the first
        present member of each oneof is kept. Keys the descriptor does not
        know are passed through untouched.
        """
        result = dict(value_tree)

        for oneof in msg_descriptor.oneofs:
            present = [f for f in oneof.fields if f.json_name in result]
            for field in present[1:]:
                del result[field.json_name]

        for field in msg_descriptor.fields:
            if field.json_name not in result:
                continue
            value = result[field.json_name]

            if cls._is_map_field(field):
                result[field.json_name] = cls._conform_map(field, value)
            elif field.is_repeated:
                if not isinstance(value, list):
                    value = [value]
                result[field.json_name] = [cls._conform_value(field, item) for item in value]
            else:
                result[field.json_name] = cls._conform_value(field, value)

        return result

    @classmethod
    def _conform_map(cls, field: FieldDescriptor, value):
        if not (isinstance(value, dict) and set(value) == {'key', 'value'}):
            return value
        value_field = field.message_type.fields_by_name['value']
        key = value['key']
        if isinstance(key, bool):
            key = 'true' if key else 'false'
        return {str(key): cls._conform_value(value_field, value['value'])}

    @classmethod
    def _conform_value(cls, field: FieldDescriptor, value):
        message_type = field.message_type
        if message_type is None or not isinstance(value, dict):
            return value
        if message_type.full_name in WELL_KNOWN_TYPES:
            return value
        return cls.conform(value, message_type)

    @classmethod
    def _is_map_field(cls, field: FieldDescriptor) -> bool:
        return (field.is_repeated
                and field.message_type is not None
                and field.message_type.GetOptions().map_entry)

    @staticmethod
    def _encode_default(obj):
        if isinstance(obj, (bytes, bytearray)):
            return base64.b64encode(obj).decode('ascii')
        raise TypeError(f"Object of type {obj.__class__.__name__} is not JSON serializable")

    @classmethod
    def to_json(cls, msg: Message, descriptor_pool=None) -> str:
        """Render a message as one line of JSON with proto field names and defaults included."""
        return json_format.MessageToJson(
            msg,
            preserving_proto_field_name=True,
            always_print_fields_with_no_presence=True,
            indent=None,
            descriptor_pool=descriptor_pool,
        )
