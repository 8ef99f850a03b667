from __future__ import annotations

from collections.abc import Callable

import numpy as np
import pytest
from onnx import GraphProto, NodeProto, ValueInfoProto, helper, numpy_helper

from onnxtrace.export import GraphBuilder, Probe, input_probe, name_runningnr


@pytest.fixture
def rng() -> np.random.Generator:
    """Provide a seeded generator for reproducible layer parameters."""
    return np.random.default_rng(1234)


@pytest.fixture
def builder() -> GraphBuilder:
    """Provide an empty graph builder."""
    return GraphBuilder("test")


@pytest.fixture
def make_probe(builder: GraphBuilder) -> Callable[..., Probe]:
    """Register graph inputs on the shared builder and return their probes."""

    def factory(name: str, shape: tuple[int | None, ...] | None) -> Probe:
        return input_probe(builder, name, shape, name_runningnr())

    return factory


@pytest.fixture
def node_attributes() -> Callable[[NodeProto], dict[str, object]]:
    """Decode the attributes of a node into plain Python values."""

    def decode(node: NodeProto) -> dict[str, object]:
        return {
            attribute.name: helper.get_attribute_value(attribute) for attribute in node.attribute
        }

    return decode


@pytest.fixture
def initializers() -> Callable[[GraphProto], dict[str, np.ndarray]]:
    """Initializers of a graph as ONNX-order numpy arrays."""

    def collect(graph: GraphProto) -> dict[str, np.ndarray]:
        return {tensor.name: numpy_helper.to_array(tensor) for tensor in graph.initializer}

    return collect


@pytest.fixture
def value_dims() -> Callable[[ValueInfoProto], list[int | None]]:
    """Dimensions of a value info; unknown dimensions come back as `None`."""

    def dims(value_info: ValueInfoProto) -> list[int | None]:
        return [
            dim.dim_value if dim.HasField("dim_value") else None
            for dim in value_info.type.tensor_type.shape.dim
        ]

    return dims


@pytest.fixture
def assert_topological() -> Callable[[GraphProto], None]:
    """Check that every node input is defined before the node consumes it."""

    def check(graph: GraphProto) -> None:
        defined = {value.name for value in graph.input}
        defined.update(tensor.name for tensor in graph.initializer)
        for node in graph.node:
            missing = [name for name in node.input if name and name not in defined]
            assert not missing, f"{node.name} consumes undefined {missing}"
            defined.update(node.output)

    return check
