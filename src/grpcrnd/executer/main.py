from typing import Tuple
from grpcrnd.executer.grpcreflectionclient import grpcreflectionclient
from grpcrnd.executer.ExecuteWorker import ExecuteWorker, build_outgoing_metadata
from grpcrnd.executer.MessageSynthesizer import MessageSynthesizer
from grpcrnd.executer.ProtobufConverter import ProtobufConverter
from grpcrnd.executer.helper import helper
from grpcrnd.executer.errors import NameFormatError, GrpcRndError


def detect_service_method(reflection_method: str) -> Tuple[str, str]:
    """Splits "pkg.Service.Method" on its last dot into ("pkg.Service", "Method")."""
    service, sep, method = reflection_method.rpartition('.')
    if not sep:
        raise NameFormatError(f"invalid reflection method name: {reflection_method}")
    return service, method


class main(helper):
    def __init__(self, host, creds = None, insecure = False, synthesizer = None, timeout = None):
        super().__init__()
        self.host = host
        self.creds = dict(creds) if isinstance(creds, dict) else {}
        self.insecure = insecure
        self.synthesizer = synthesizer if synthesizer is not None else MessageSynthesizer()
        self.timeout = timeout

    def _client(self):
        return grpcreflectionclient(self.host, self.creds, self.insecure)

    def call(self, reflection_method, headers = None, uselog = False) -> str:
        """
        Calls ``reflection_method`` with a randomly generated request and
        writes the rendered response (or returned status) to the output sink.

        Returns the rendered JSON document.
        """
        try:
            service_name, method_name = detect_service_method(reflection_method)
        except NameFormatError as e:
            raise NameFormatError(f"unexpected format: {e}") from e

        client = self._client()
        channel = client.connect_to_server()
        try:
            service_desc = client.resolve_service(service_name)
            method_desc = client.find_method(service_desc, method_name)

            request = self.create_message(method_desc)

            worker = ExecuteWorker()
            outcome = worker.invoke(channel, method_desc, request, build_outgoing_metadata(headers), self.timeout)
            self.log('call', [reflection_method], kwargs={'headers': outcome.headers, 'trailers': outcome.trailers})

            try:
                # status details resolve against the default pool where google.rpc types live
                pool = None if outcome.failed else client.pool
                resp_json = ProtobufConverter.to_json(outcome.payload, pool)
            except (TypeError, ValueError) as e:
                raise GrpcRndError(f"failed to marshal json response: {e}") from e

            self.output(resp_json, uselog)
            return resp_json
        except GrpcRndError as e:
            self.log('call', [reflection_method, headers], exception=e)
            raise
        finally:
            client.close_server_connection()

    def create_message(self, method_desc):
        input_desc = method_desc.input_type
        value_tree = self.synthesizer.synthesize(input_desc)
        self.log('create_message', [input_desc.full_name], output=value_tree)
        return ProtobufConverter.to_protobuf(value_tree, input_desc)

    def list_services(self, uselog = False):
        client = self._client()
        client.connect_to_server()
        try:
            services = client.list_services()
            for service in services:
                self.output(service, uselog)
            return services
        finally:
            client.close_server_connection()
