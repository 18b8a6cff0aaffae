import random

import pytest
from google.protobuf import descriptor_pb2
from google.protobuf import descriptor_pool
from google.protobuf import timestamp_pb2
from google.protobuf import wrappers_pb2

from grpcrnd.executer.ValueGenerator import ValueGenerator
from grpcrnd.executer.MessageSynthesizer import MessageSynthesizer

F = descriptor_pb2.FieldDescriptorProto

SCALAR_FIELDS = [
    ("f_double", F.TYPE_DOUBLE),
    ("f_float", F.TYPE_FLOAT),
    ("f_int32", F.TYPE_INT32),
    ("f_int64", F.TYPE_INT64),
    ("f_uint32", F.TYPE_UINT32),
    ("f_uint64", F.TYPE_UINT64),
    ("f_sint32", F.TYPE_SINT32),
    ("f_sint64", F.TYPE_SINT64),
    ("f_fixed32", F.TYPE_FIXED32),
    ("f_fixed64", F.TYPE_FIXED64),
    ("f_sfixed32", F.TYPE_SFIXED32),
    ("f_sfixed64", F.TYPE_SFIXED64),
    ("f_bool", F.TYPE_BOOL),
    ("f_string", F.TYPE_STRING),
    ("f_bytes", F.TYPE_BYTES),
]

COLOR_NUMBERS = (0, 5, 9)


def add_field(msg, name, number, type_, type_name=None, label=F.LABEL_OPTIONAL, oneof_index=None):
    field = msg.field.add(name=name, number=number, type=type_, label=label)
    if type_name:
        field.type_name = type_name
    if oneof_index is not None:
        field.oneof_index = oneof_index
    return field


def build_test_file():
    fd = descriptor_pb2.FileDescriptorProto(name="test/echo.proto", package="test", syntax="proto3")
    fd.dependency.extend(["google/protobuf/timestamp.proto", "google/protobuf/wrappers.proto"])

    color = fd.enum_type.add(name="Color")
    for name, number in zip(("COLOR_UNSPECIFIED", "RED", "BLUE"), COLOR_NUMBERS):
        color.value.add(name=name, number=number)

    scalars = fd.message_type.add(name="Scalars")
    for number, (name, type_) in enumerate(SCALAR_FIELDS, start=1):
        add_field(scalars, name, number, type_)

    inner = fd.message_type.add(name="Inner")
    add_field(inner, "value", 1, F.TYPE_INT64)

    echo = fd.message_type.add(name="EchoRequest")
    add_field(echo, "text", 1, F.TYPE_STRING)
    add_field(echo, "inner_msg", 2, F.TYPE_MESSAGE, ".test.Inner")
    add_field(echo, "color", 3, F.TYPE_ENUM, ".test.Color")

    level3 = fd.message_type.add(name="Level3")
    add_field(level3, "flag", 1, F.TYPE_BOOL)
    add_field(level3, "count", 2, F.TYPE_INT64)
    level2 = fd.message_type.add(name="Level2")
    add_field(level2, "child", 1, F.TYPE_MESSAGE, ".test.Level3")
    add_field(level2, "label", 2, F.TYPE_STRING)
    level1 = fd.message_type.add(name="Level1")
    add_field(level1, "child", 1, F.TYPE_MESSAGE, ".test.Level2")
    add_field(level1, "id", 2, F.TYPE_UINT32)
    add_field(level1, "ratio", 3, F.TYPE_DOUBLE)

    node = fd.message_type.add(name="Node")
    add_field(node, "name", 1, F.TYPE_STRING)
    add_field(node, "next", 2, F.TYPE_MESSAGE, ".test.Node")

    bag = fd.message_type.add(name="Bag")
    entry = bag.nested_type.add(name="CountsEntry")
    entry.options.map_entry = True
    add_field(entry, "key", 1, F.TYPE_STRING)
    add_field(entry, "value", 2, F.TYPE_INT32)
    bag.oneof_decl.add(name="choice")
    add_field(bag, "numbers", 1, F.TYPE_INT32, label=F.LABEL_REPEATED)
    add_field(bag, "counts", 2, F.TYPE_MESSAGE, ".test.Bag.CountsEntry", label=F.LABEL_REPEATED)
    add_field(bag, "first", 3, F.TYPE_STRING, oneof_index=0)
    add_field(bag, "second", 4, F.TYPE_INT32, oneof_index=0)
    add_field(bag, "at", 5, F.TYPE_MESSAGE, ".google.protobuf.Timestamp")
    add_field(bag, "wrapped", 6, F.TYPE_MESSAGE, ".google.protobuf.Int64Value")
    add_field(bag, "items", 7, F.TYPE_MESSAGE, ".test.Inner", label=F.LABEL_REPEATED)
    add_field(bag, "colors", 8, F.TYPE_ENUM, ".test.Color", label=F.LABEL_REPEATED)

    service = fd.service.add(name="Test")
    service.method.add(name="Echo", input_type=".test.EchoRequest", output_type=".test.EchoRequest")
    service.method.add(name="Fail", input_type=".test.EchoRequest", output_type=".test.EchoRequest")
    service.method.add(name="Pack", input_type=".test.Bag", output_type=".test.Bag")
    service.method.add(name="Watch", input_type=".test.EchoRequest", output_type=".test.EchoRequest",
                       server_streaming=True)
    return fd


def well_known_files():
    files = []
    for module in (timestamp_pb2, wrappers_pb2):
        fd = descriptor_pb2.FileDescriptorProto()
        module.DESCRIPTOR.CopyToProto(fd)
        files.append(fd)
    return files


@pytest.fixture()
def pool():
    pool = descriptor_pool.DescriptorPool()
    for fd in well_known_files():
        pool.Add(fd)
    pool.Add(build_test_file())
    return pool


@pytest.fixture()
def service_desc(pool):
    return pool.FindServiceByName("test.Test")


@pytest.fixture()
def generator():
    return ValueGenerator(random.Random(1234))


@pytest.fixture()
def synthesizer(generator):
    return MessageSynthesizer(generator)


@pytest.fixture(autouse=True)
def log_file(tmp_path, monkeypatch):
    """Keeps the file handler of the shared logger out of the working tree."""
    import logging

    loggers = [logging.getLogger("grpcrnd"), logging.getLogger("grpcrnd.output")]

    def reset():
        for logger in loggers:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()

    reset()
    monkeypatch.chdir(tmp_path)
    yield tmp_path / "error.log"
    reset()
