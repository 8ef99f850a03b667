"""Minimal host computation graph: named vertices wired into a DAG."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from onnxtrace.models.functional import dispatch


class AbstractVertex:
    """A node of a `CompGraph`."""

    name: str
    inputs: tuple[AbstractVertex, ...]


@dataclass(eq=False)
class InputVertex(AbstractVertex):
    name: str
    shape: tuple[int | None, ...] | None = None

    @property
    def inputs(self) -> tuple[AbstractVertex, ...]:  # type: ignore[override]
        return ()


@dataclass(eq=False)
class Vertex(AbstractVertex):
    """Applies `layer` to the outputs of `inputs`.

    `naming`, when set, replaces the naming strategy used for the operators
    traced inside this vertex.
    """

    layer: Callable[..., Any]
    inputs: tuple[AbstractVertex, ...]
    name: str = ""
    naming: Any = None

    def __post_init__(self) -> None:
        self.inputs = tuple(self.inputs)
        if not self.inputs:
            raise ValueError("A vertex needs at least one input.")

    def __call__(self, *xs: Any) -> Any:
        return dispatch(self, *xs)


def vertex(
    layer: Callable[..., Any],
    *inputs: AbstractVertex,
    name: str = "",
    naming: Any = None,
) -> Vertex:
    return Vertex(layer=layer, inputs=inputs, name=name, naming=naming)


class CompGraph:
    """Graph from `inputs` to `outputs`, each vertex evaluated once."""

    def __init__(
        self,
        inputs: InputVertex | tuple[InputVertex, ...] | list[InputVertex],
        outputs: AbstractVertex | tuple[AbstractVertex, ...] | list[AbstractVertex],
    ) -> None:
        self.inputs = (inputs,) if isinstance(inputs, AbstractVertex) else tuple(inputs)
        self.outputs = (outputs,) if isinstance(outputs, AbstractVertex) else tuple(outputs)
        if not self.inputs or not self.outputs:
            raise ValueError("A graph needs at least one input and one output.")

        unreachable = [
            v.name
            for v in self.vertices()
            if isinstance(v, InputVertex) and v not in self.inputs
        ]
        if unreachable:
            raise ValueError(f"Graph uses undeclared input vertices: {unreachable}.")

    def vertices(self) -> list[AbstractVertex]:
        """All vertices reachable from the outputs, producers first."""
        ordered: list[AbstractVertex] = []
        visited: set[int] = set()
        stack: list[tuple[AbstractVertex, bool]] = [(v, False) for v in reversed(self.outputs)]
        while stack:
            current, expanded = stack.pop()
            if expanded:
                ordered.append(current)
                continue
            if id(current) in visited:
                continue
            visited.add(id(current))
            stack.append((current, True))
            stack.extend((parent, False) for parent in reversed(current.inputs))
        return ordered

    def __call__(self, *xs: Any) -> Any:
        if len(xs) != len(self.inputs):
            raise TypeError(f"Graph expects {len(self.inputs)} inputs, got {len(xs)}.")

        values: dict[AbstractVertex, Any] = dict(zip(self.inputs, xs))
        for current in self.vertices():
            if current in values:
                continue
            values[current] = current(*(values[parent] for parent in current.inputs))

        results = tuple(values[output] for output in self.outputs)
        return results[0] if len(results) == 1 else results
