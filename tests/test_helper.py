import logging

import grpc

from grpcrnd.executer.errors import BuildError
from grpcrnd.executer.helper import helper


class FakeRpcError(grpc.RpcError):
    def code(self):
        return grpc.StatusCode.UNAVAILABLE

    def details(self):
        return "connection refused"

    def debug_error_string(self):
        return "debug"


def test_level_is_configurable():
    assert helper(log_level="debug").logger.isEnabledFor(logging.DEBUG)
    assert not helper(log_level="error").logger.isEnabledFor(logging.DEBUG)
    assert not helper(log_level="none").logger.isEnabledFor(logging.ERROR)


def file_handlers(logger):
    return [h for h in logger.handlers if isinstance(h, logging.FileHandler)]


def console_handlers(logger):
    return [h for h in logger.handlers if type(h) is logging.StreamHandler]


def test_handlers_are_not_duplicated():
    helper(log_to_console=True)
    logger = helper(log_to_console=True).logger
    assert len(file_handlers(logger)) == 1
    assert len(console_handlers(logger)) == 1


def test_file_handler_added_next_to_foreign_handlers(log_file):
    foreign = logging.NullHandler()
    logging.getLogger("grpcrnd").addHandler(foreign)

    logger = helper(log_level="error").logger
    logger.error("still on disk")

    assert foreign in logger.handlers
    assert len(file_handlers(logger)) == 1
    assert "still on disk" in log_file.read_text()


def test_exceptions_are_written_to_log_file(log_file):
    try:
        raise ValueError("broken input")
    except ValueError as e:
        helper(log_level="error").log("parse", ["raw"], exception=e)

    content = log_file.read_text()
    assert "Exception in function 'parse': broken input" in content
    assert "Traceback" in content


def test_exception_to_serializable_keeps_cause():
    try:
        try:
            raise ValueError("bad json")
        except ValueError as inner:
            raise BuildError("decode", "failed to unmarshal") from inner
    except BuildError as e:
        data = helper().exception_to_serializable(e, {"method": "test.Test.Echo"})

    assert data["success"] is False
    assert data["error"]["type"] == "BuildError"
    assert data["error"]["message"] == "decode: failed to unmarshal"
    assert data["error"]["cause"] == {"type": "ValueError", "message": "bad json"}
    assert data["context"] == {"method": "test.Test.Echo"}


def test_exception_to_serializable_grpc_details():
    data = helper().exception_to_serializable(FakeRpcError())

    assert data["error"]["subtype"] == "grpc_error"
    assert data["error"]["code_name"] == "UNAVAILABLE"
    assert data["error"]["code_value"] == 14
    assert data["error"]["details"] == "connection refused"


def test_output_to_stdout(capsys):
    helper().output('{"a": 1}')
    assert capsys.readouterr().out == '{"a": 1}\n'


def test_output_to_log(capsys):
    helper().output('{"a": 1}', uselog=True)
    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.rstrip().endswith('{"a": 1}')
