from grpc_reflection.v1alpha import reflection_pb2, reflection_pb2_grpc
from google.protobuf import descriptor_pb2
from google.protobuf import descriptor_pool
from google.protobuf.descriptor import ServiceDescriptor, MethodDescriptor
import grpc
from grpcrnd.executer.helper import helper
from grpcrnd.executer.errors import ResolutionError
from grpcrnd.constants import REFLECTION_SERVICE_NAMES


class grpcreflectionclient(helper):
    """Resolves service and method descriptors from a server through gRPC reflection.

    Descriptors are loaded into a private ``DescriptorPool`` so types from
    different servers never collide with the process default pool.
    """

    def __init__(self, host, creds = None, insecure = False):
        super().__init__()
        self.host = host
        self.creds = dict(creds) if isinstance(creds, dict) else {}
        self.insecure = insecure
        self.pool = descriptor_pool.DescriptorPool()
        self.loaded_files = set()
        self.channel = None
        self.reflection_stub = None

    def connect_to_server(self):
        """
        Opens the channel used for reflection and for the call itself.
        """
        try:
            if self.insecure:
                channel = grpc.insecure_channel(self.host)
            else:
                root_certificates = private_key = certificate_chain = None

                if self.creds.get('client_key'):
                    with open(self.creds['client_key'], 'rb') as f:
                        private_key = f.read()

                if self.creds.get('client_certificate'):
                    with open(self.creds['client_certificate'], 'rb') as f:
                        certificate_chain = f.read()

                if self.creds.get('ca_certificate'):
                    with open(self.creds['ca_certificate'], 'rb') as f:
                        root_certificates = f.read()

                if ((private_key is not None and certificate_chain is None) or (private_key is None and certificate_chain is not None)):
                    raise ValueError("Both client key and client certificate are required")

                credentials = grpc.ssl_channel_credentials(
                    root_certificates=root_certificates,
                    private_key=private_key,
                    certificate_chain=certificate_chain
                )
                channel = grpc.secure_channel(self.host, credentials)

            self.channel = channel
            self.reflection_stub = reflection_pb2_grpc.ServerReflectionStub(channel)
            return channel
        except Exception as e:
            self.log(function_name='connect_to_server', args=[self.host], exception=e)
            raise

    def close_server_connection(self):
        if self.channel is not None:
            self.channel.close()
            self.channel = None
            self.reflection_stub = None

    def _reflection_request(self, **kwargs) -> reflection_pb2.ServerReflectionResponse:
        if self.reflection_stub is None:
            raise RuntimeError("Reflection stub not initialized. Call connect_to_server first.")

        request = reflection_pb2.ServerReflectionRequest(host=self.host, **kwargs)
        response = next(iter(self.reflection_stub.ServerReflectionInfo(iter([request]))))
        if response.HasField('error_response'):
            raise LookupError(
                f"reflection error {response.error_response.error_code}: {response.error_response.error_message}"
            )
        return response

    def list_services(self) -> list[str]:
        """
        Lists the services the server exposes, without the reflection service itself.
        """
        try:
            response = self._reflection_request(list_services="")
            return [s.name for s in response.list_services_response.service
                    if s.name not in REFLECTION_SERVICE_NAMES]
        except (grpc.RpcError, LookupError) as e:
            self.log(function_name='list_services', args=[], exception=e)
            raise ResolutionError(f"failed to list services: {e}") from e

    def _parse_files(self, response):
        fd_protos = []
        for fd_bytes in response.file_descriptor_response.file_descriptor_proto:
            fd_proto = descriptor_pb2.FileDescriptorProto()
            fd_proto.ParseFromString(fd_bytes)
            fd_protos.append(fd_proto)
        return fd_protos

    def _fetch_file(self, file_name: str) -> descriptor_pb2.FileDescriptorProto:
        try:
            response = self._reflection_request(file_by_filename=file_name)
        except LookupError:
            # servers often leave out the well-known protos, the runtime ships them
            fd_proto = descriptor_pb2.FileDescriptorProto()
            descriptor_pool.Default().FindFileByName(file_name).CopyToProto(fd_proto)
            return fd_proto

        for fd_proto in self._parse_files(response):
            if fd_proto.name == file_name:
                return fd_proto
        raise LookupError(f"file '{file_name}' not returned by server reflection")

    def _add_file(self, fd_proto, known_files, in_progress):
        if fd_proto.name in self.loaded_files or fd_proto.name in in_progress:
            return
        in_progress.add(fd_proto.name)

        # dependencies have to be in the pool before the file itself
        for dep in fd_proto.dependency:
            if dep in self.loaded_files:
                continue
            dep_proto = known_files.get(dep)
            if dep_proto is None:
                dep_proto = self._fetch_file(dep)
                known_files[dep] = dep_proto
            self._add_file(dep_proto, known_files, in_progress)

        self.pool.Add(fd_proto)
        self.loaded_files.add(fd_proto.name)

    def resolve_service(self, service_name: str) -> ServiceDescriptor:
        """
        Retrieves the descriptor of a fully qualified service (e.g. "test.Test")
        along with every file it depends on.

        Raises:
            ResolutionError: If the service is unknown to the server or its
                             descriptors can not be loaded.
        """
        try:
            response = self._reflection_request(file_containing_symbol=service_name)
            fd_protos = self._parse_files(response)
            known_files = {fd.name: fd for fd in fd_protos}
            for fd_proto in fd_protos:
                self._add_file(fd_proto, known_files, set())
            return self.pool.FindServiceByName(service_name)
        except (grpc.RpcError, LookupError, KeyError, TypeError) as e:
            self.log(function_name='resolve_service', args=[service_name], exception=e)
            raise ResolutionError(f"failed to resolve service {service_name}: {e}") from e

    def find_method(self, service_desc: ServiceDescriptor, method_name: str) -> MethodDescriptor:
        method_desc = service_desc.methods_by_name.get(method_name)
        if method_desc is None:
            raise ResolutionError(f"method {method_name} couldn't be found in {service_desc.full_name}")
        return method_desc
