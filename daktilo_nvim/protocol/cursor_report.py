"""
Wire messages for the daktilo `client.Daktilo` gRPC service.

The message classes are built at import time from a FileDescriptorProto so no
generated `_pb2` module has to be shipped. The schema is:

    syntax = "proto3";
    package client;

    service Daktilo {
      rpc ReportCursorMovement (ReportCursorMovementRequest)
          returns (ReportCursorMovementResponse);
    }

    message ReportCursorMovementRequest {
      optional string file_path = 1;
      optional uint64 line_number = 2;
      uint64 column_number = 3;
    }

    message ReportCursorMovementResponse {}
"""

from __future__ import annotations

from typing import Any

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from daktilo_nvim.common.types import CursorEvent

PACKAGE = "client"
SERVICE = "Daktilo"
REPORT_METHOD = "ReportCursorMovement"
REPORT_METHOD_PATH = f"/{PACKAGE}.{SERVICE}/{REPORT_METHOD}"

_Field = descriptor_pb2.FieldDescriptorProto


def _optionalField_add(
    message: descriptor_pb2.DescriptorProto, name: str, number: int, field_type: int
) -> None:
    """Add a proto3 `optional` field with its synthetic oneof."""
    message.oneof_decl.add(name=f"_{name}")
    message.field.add(
        name=name,
        number=number,
        type=field_type,
        label=_Field.LABEL_OPTIONAL,
        oneof_index=len(message.oneof_decl) - 1,
        proto3_optional=True,
    )


def fileDescriptor_build() -> descriptor_pb2.FileDescriptorProto:
    """
    Build the descriptor for the daktilo client service.

    Returns:
        FileDescriptorProto describing the request, response and service.
    """
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="daktilo_nvim/client.proto",
        package=PACKAGE,
        syntax="proto3",
    )

    request = file_proto.message_type.add(name="ReportCursorMovementRequest")
    _optionalField_add(request, "file_path", 1, _Field.TYPE_STRING)
    _optionalField_add(request, "line_number", 2, _Field.TYPE_UINT64)
    request.field.add(
        name="column_number",
        number=3,
        type=_Field.TYPE_UINT64,
        label=_Field.LABEL_OPTIONAL,
    )

    file_proto.message_type.add(name="ReportCursorMovementResponse")

    service = file_proto.service.add(name=SERVICE)
    service.method.add(
        name=REPORT_METHOD,
        input_type=f".{PACKAGE}.ReportCursorMovementRequest",
        output_type=f".{PACKAGE}.ReportCursorMovementResponse",
    )
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(fileDescriptor_build().SerializeToString())

ReportCursorMovementRequest: Any = message_factory.GetMessageClass(
    _pool.FindMessageTypeByName(f"{PACKAGE}.ReportCursorMovementRequest")
)
ReportCursorMovementResponse: Any = message_factory.GetMessageClass(
    _pool.FindMessageTypeByName(f"{PACKAGE}.ReportCursorMovementResponse")
)


def reportRequest_build(event: CursorEvent) -> Any:
    """
    Map a CursorEvent onto a ReportCursorMovementRequest.

    No validation is applied; any file name, including the empty string, is
    sent as-is. A `None` source name leaves `file_path` unset.

    Args:
        event: Cursor event from the host

    Returns:
        ReportCursorMovementRequest message
    """
    request = ReportCursorMovementRequest(column_number=event.column)
    request.line_number = event.line
    if event.source_name is not None:
        request.file_path = event.source_name
    return request
