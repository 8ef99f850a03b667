"""Probes record host operations into a shared, append-only graph builder."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any

from onnx import GraphProto, NodeProto, TensorProto, ValueInfoProto

from onnxtrace.core.exceptions import (
    GraphConstructionError,
    NameCollisionError,
    ShapeInferenceError,
)
from onnxtrace.export import protos
from onnxtrace.export.naming import NamingStrategy
from onnxtrace.export.registry import apply
from onnxtrace.models.functional import add

logger = logging.getLogger(__name__)

Shape = tuple[int | None, ...]
ShapeTransfer = Callable[[Shape], Shape]


def _same_shape(shape: Shape) -> Shape:
    return shape


class GraphBuilder:
    """Graph under construction for one export call.

    Entries are only ever appended, so insertion order is discovery order and
    every node comes after the producers of its inputs.
    """

    def __init__(self, name: str = "graph") -> None:
        self.name = name
        self.nodes: list[NodeProto] = []
        self.initializers: list[TensorProto] = []
        self.inputs: list[ValueInfoProto] = []
        self.outputs: list[ValueInfoProto] = []
        self.value_info: list[ValueInfoProto] = []
        self._values: set[str] = set()
        self._node_names: set[str] = set()
        self._output_names: set[str] = set()
        self._finalized = False

    @property
    def finalized(self) -> bool:
        return self._finalized

    def defines(self, name: str) -> bool:
        """Whether `name` is a graph input, an initializer or a node output."""
        return name in self._values

    def add_input(self, value_info: ValueInfoProto) -> None:
        self._ensure_open()
        self._claim_value(value_info.name, "graph input")
        self.inputs.append(value_info)

    def add_initializer(self, tensor: TensorProto) -> None:
        self._ensure_open()
        self._claim_value(tensor.name, "initializer")
        self.initializers.append(tensor)

    def add_node(self, node: NodeProto) -> None:
        self._ensure_open()
        if node.name in self._node_names:
            raise NameCollisionError(node.name, "node")
        undefined = [name for name in node.input if name and name not in self._values]
        if undefined:
            raise GraphConstructionError(
                f"Node '{node.name}' consumes values that are not defined yet: {undefined}."
            )
        for output in node.output:
            self._claim_value(output, "node output")
        self._node_names.add(node.name)
        self.nodes.append(node)
        logger.debug("Traced %s node '%s' from %s", node.op_type, node.name, list(node.input))

    def add_output(self, value_info: ValueInfoProto) -> None:
        self._ensure_open()
        if value_info.name not in self._values:
            raise GraphConstructionError(f"Graph output '{value_info.name}' is never produced.")
        if value_info.name in self._output_names:
            raise NameCollisionError(value_info.name, "graph output")
        self._output_names.add(value_info.name)
        self.outputs.append(value_info)

    def to_proto(self) -> GraphProto:
        return protos.graph(
            self.name,
            nodes=self.nodes,
            inputs=self.inputs,
            outputs=self.outputs,
            initializers=self.initializers,
            value_info=self.value_info,
        )

    def freeze(self) -> GraphProto:
        self._finalized = True
        return self.to_proto()

    def _claim_value(self, name: str, namespace: str) -> None:
        if name in self._values:
            raise NameCollisionError(name, namespace)
        self._values.add(name)

    def _ensure_open(self) -> None:
        if self._finalized:
            raise GraphConstructionError(f"Graph '{self.name}' is already finalized.")


@dataclass(frozen=True, eq=False)
class Probe:
    """Placeholder for a traced value.

    Carries the name and host-order shape of the value it stands for, the
    naming strategy for the next operation and the graph being built.
    `shape=None` means the rank is unknown.
    """

    name: str
    shape: Shape | None
    nextname: NamingStrategy
    graph: GraphBuilder

    @property
    def ndim(self) -> int:
        if self.shape is None:
            raise ShapeInferenceError(f"The rank of '{self.name}' is unknown.")
        return len(self.shape)

    def with_namestrat(self, strategy: NamingStrategy, name: str | None = None) -> Probe:
        """Same value, different naming strategy (and optionally name)."""
        return replace(self, nextname=strategy, name=self.name if name is None else name)

    def derive(self, name: str, fshape: ShapeTransfer = _same_shape) -> Probe:
        """Probe for the output `name` of an operation applied to this probe."""
        shape = None if self.shape is None else tuple(fshape(self.shape))
        return Probe(name=name, shape=shape, nextname=self.nextname, graph=self.graph)

    def __trace__(self, op: Any, *args: Any, **params: Any) -> Probe:
        return apply(op, *args, **params)

    def __add__(self, other: Any) -> Probe:
        return add(self, other)

    def __radd__(self, other: Any) -> Probe:
        return add(other, self)

    def __repr__(self) -> str:
        return f"Probe(name={self.name!r}, shape={self.shape!r})"


def input_probe(
    graph: GraphBuilder,
    name: str,
    shape: Shape | None,
    namestrat: NamingStrategy,
) -> Probe:
    """Register a graph input and return the probe that starts tracing from it."""
    shape = None if shape is None else tuple(shape)
    graph.add_input(protos.value_info(name, shape))
    return Probe(name=name, shape=shape, nextname=namestrat, graph=graph)


def add_output(probe: Probe) -> None:
    probe.graph.add_output(protos.value_info(probe.name, probe.shape))


def finalize(graph: GraphBuilder, outputs: Iterable[Probe]) -> GraphProto:
    """Register `outputs` as graph outputs and freeze the builder.

    Graph inputs and outputs must have a known rank: ONNX requires a shape on
    every graph boundary value, although its dimensions may stay unknown.
    """
    for probe in outputs:
        if probe.graph is not graph:
            raise GraphConstructionError(f"Output '{probe.name}' was traced into another graph.")
        add_output(probe)

    unranked = [
        value.name
        for value in (*graph.inputs, *graph.outputs)
        if not value.type.tensor_type.HasField("shape")
    ]
    if unranked:
        raise ShapeInferenceError(
            f"The rank of graph inputs/outputs {unranked} is unknown; declare input shapes "
            "explicitly or annotate the traced callable with Annotated[np.ndarray, rank]."
        )
    return graph.freeze()
