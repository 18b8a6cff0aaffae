import grpc
from dataclasses import dataclass, field
from google.protobuf.descriptor import MethodDescriptor
from google.protobuf.message import Message
from google.protobuf.message_factory import GetMessageClass
from google.rpc import status_pb2
from grpc_status import rpc_status
from typing import List, Optional, Sequence, Tuple
from grpcrnd.executer.helper import helper
from grpcrnd.executer.errors import InvocationError

MetadataPairs = List[Tuple[str, str]]


@dataclass
class InvocationOutcome:
    payload: Message
    headers: MetadataPairs = field(default_factory=list)
    trailers: MetadataPairs = field(default_factory=list)
    failed: bool = False


def build_outgoing_metadata(headers: Sequence[str]) -> MetadataPairs:
    """Turns "Key: Value" strings into metadata pairs, dropping entries without a colon."""
    pairs = []
    for header in headers or []:
        key, sep, value = header.partition(':')
        if not sep:
            continue
        pairs.append((key.strip(), value.strip()))
    return pairs


def _metadata_pairs(metadata) -> MetadataPairs:
    return [(md.key, md.value) if hasattr(md, 'key') else tuple(md) for md in metadata or ()]


class ExecuteWorker(helper):

    def invoke(self, channel, method_desc: MethodDescriptor, request: Message,
               meta_data: Optional[MetadataPairs] = None, timeout: Optional[float] = None) -> InvocationOutcome:
        """
        Performs one unary call and captures the peer's header and trailer metadata.

        A failure that carries a gRPC status becomes the outcome payload as a
        ``google.rpc.Status``; anything else raises ``InvocationError``.
        """
        if method_desc.client_streaming or method_desc.server_streaming:
            raise InvocationError(f"streaming method {method_desc.full_name} is not supported")

        OutputMessage = GetMessageClass(method_desc.output_type)
        rpc_method_path = f"/{method_desc.containing_service.full_name}/{method_desc.name}"
        # metadata keys are lowercase on the wire
        metadata = [(key.lower(), value) for key, value in (meta_data or [])]

        multicallable = channel.unary_unary(
            rpc_method_path,
            request_serializer=type(request).SerializeToString,
            response_deserializer=OutputMessage.FromString
        )
        try:
            response, call = multicallable.with_call(request, timeout=timeout, metadata=metadata)
            self.log(function_name='invoke', args=[rpc_method_path], output=response)
            return InvocationOutcome(
                payload=response,
                headers=_metadata_pairs(call.initial_metadata()),
                trailers=_metadata_pairs(call.trailing_metadata()),
            )
        except grpc.RpcError as e:
            status = self.status_from_error(e)
            if status is None:
                self.log(function_name='invoke', args=[rpc_method_path], exception=e)
                raise InvocationError(f"failed to get error from proto: {e}") from e

            self.log(function_name='invoke', args=[rpc_method_path], output=status)
            return InvocationOutcome(
                payload=status,
                headers=_metadata_pairs(self._call_metadata(e, 'initial_metadata')),
                trailers=_metadata_pairs(self._call_metadata(e, 'trailing_metadata')),
                failed=True,
            )

    def status_from_error(self, error: grpc.RpcError) -> Optional[status_pb2.Status]:
        """Returns the status carried by ``error``, or None when it has none."""
        code_fn = getattr(error, 'code', None)
        if not callable(code_fn):
            return None

        if callable(getattr(error, 'trailing_metadata', None)):
            try:
                rich_status = rpc_status.from_call(error)
            except ValueError as e:
                # details trailer disagrees with the call status, use the call status
                self.log(function_name='status_from_error', args=[error], exception=e)
                rich_status = None
            if rich_status is not None:
                return rich_status

        code = code_fn()
        if code is None:
            return None
        details = error.details() if callable(getattr(error, 'details', None)) else None
        return status_pb2.Status(code=code.value[0], message=details or "")

    @staticmethod
    def _call_metadata(error, name):
        getter = getattr(error, name, None)
        return getter() if callable(getter) else None
