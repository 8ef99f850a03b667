"""Constructors for the ONNX protos emitted by the tracer."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import numpy as np
from onnx import (
    GraphProto,
    ModelProto,
    NodeProto,
    TensorProto,
    ValueInfoProto,
    helper,
    numpy_helper,
)

from onnxtrace.config import IR_VERSION, OPSET_VERSION, PACKAGE_VERSION
from onnxtrace.export.layout import reverse_dims, to_target_order
from onnxtrace.schemas.export import OnnxExportOptions


def node(
    op_type: str,
    inputs: Sequence[str],
    name: str,
    attributes: Mapping[str, Any] | None = None,
) -> NodeProto:
    """One node whose single output shares the node's name."""
    return helper.make_node(op_type, list(inputs), [name], name=name, **dict(attributes or {}))


def tensor(host_array: np.ndarray, name: str) -> TensorProto:
    """Initializer from a host array; dims and data are reversed into ONNX order."""
    return numpy_helper.from_array(to_target_order(host_array), name=name)


def value_info(
    name: str,
    host_shape: Sequence[int | None] | None,
    elem_type: int = TensorProto.FLOAT,
) -> ValueInfoProto:
    dims = reverse_dims(host_shape)
    return helper.make_tensor_value_info(name, elem_type, None if dims is None else list(dims))


def graph(
    name: str,
    *,
    nodes: Iterable[NodeProto],
    inputs: Iterable[ValueInfoProto],
    outputs: Iterable[ValueInfoProto],
    initializers: Iterable[TensorProto],
    value_info: Iterable[ValueInfoProto] = (),
) -> GraphProto:
    return helper.make_graph(
        list(nodes),
        name,
        list(inputs),
        list(outputs),
        initializer=list(initializers),
        value_info=list(value_info),
    )


def model(graph_proto: GraphProto, *, options: OnnxExportOptions, producer_name: str) -> ModelProto:
    """Wrap a graph in a model pinned to the supported IR and opset versions."""
    metadata: dict[str, Any] = {
        "producer_name": options.producer_name or producer_name,
        "producer_version": options.producer_version or PACKAGE_VERSION,
        "model_version": options.model_version,
    }
    if options.doc_string is not None:
        metadata["doc_string"] = options.doc_string
    if options.domain is not None:
        metadata["domain"] = options.domain

    return helper.make_model(
        graph_proto,
        ir_version=IR_VERSION,
        opset_imports=[helper.make_opsetid("", OPSET_VERSION)],
        **metadata,
    )
