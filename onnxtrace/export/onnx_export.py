"""Trace host callables and graphs into ONNX models."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import IO, Annotated, Any, Union, get_args, get_origin

import numpy as np
import onnx
from onnx import GraphProto, ModelProto

from onnxtrace.config import get_settings
from onnxtrace.core.exceptions import GraphConstructionError, ShapeInferenceError
from onnxtrace.export import protos
from onnxtrace.export.naming import NamingStrategy, default_namestrat, name_runningnr, recursename
from onnxtrace.export.probe import GraphBuilder, Probe, Shape, finalize, input_probe
from onnxtrace.export.validation import validate
from onnxtrace.models.graph import CompGraph
from onnxtrace.models.layers import Chain
from onnxtrace.schemas.export import InputSpec, OnnxExportOptions

logger = logging.getLogger(__name__)

InputDeclaration = Union[InputSpec, tuple[str, Any], Sequence[Union[int, None]], None]
PostHook = Callable[[ModelProto], None]

_POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


def modelproto(
    f: Callable[..., Any],
    *inputs: InputDeclaration,
    namestrat: NamingStrategy | None = None,
    posthook: PostHook = validate,
    options: OnnxExportOptions | None = None,
) -> ModelProto:
    """Trace `f` and return the resulting ONNX model.

    `inputs` are either shapes (tuples in host axis order, or `None` for an
    unknown rank), named `data_0`, `data_1`, ..., or `(name, shape)` pairs /
    `InputSpec`s. Without inputs the shapes are inferred from the signature of
    `f`; a `CompGraph` uses its input vertices instead.

    `posthook` is called with the finished model and may raise to abort the
    export.
    """
    settings = get_settings()
    options = options or OnnxExportOptions()
    namestrat = namestrat if namestrat is not None else default_namestrat(f)

    specs = _input_specs(f, inputs, namestrat=namestrat, prefix=settings.input_prefix)
    graph_proto = graphproto(f, *specs, namestrat=namestrat, name=options.model_name)
    model = protos.model(graph_proto, options=options, producer_name=settings.producer_name)

    posthook(model)
    logger.info(
        "Traced model '%s' with %d nodes and %d initializers",
        options.model_name,
        len(graph_proto.node),
        len(graph_proto.initializer),
    )
    return model


def graphproto(
    f: Callable[..., Any],
    *indata: InputSpec | tuple[str, Any],
    namestrat: NamingStrategy | None = None,
    name: str = "graph",
) -> GraphProto:
    """Trace `f` on probes for `indata` into a `GraphProto`."""
    builder = GraphBuilder(name)
    strategy = namestrat if namestrat is not None else name_runningnr()
    probes = []
    for item in indata:
        spec = _as_spec(item)
        probes.append(input_probe(builder, spec.name, spec.shape, strategy))

    outputs = f(*probes)
    if isinstance(outputs, Probe):
        outputs = (outputs,)
    if not isinstance(outputs, (tuple, list)) or not all(
        isinstance(output, Probe) for output in outputs
    ):
        raise GraphConstructionError(
            f"Traced callable must return probes, got {type(outputs).__name__}."
        )
    return finalize(builder, outputs)


def infer_inshapes(f: Callable[..., Any]) -> tuple[Shape | None, ...]:
    """Input shapes from the positional parameters of `f`.

    A parameter annotated as ``Annotated[np.ndarray, rank]`` gets `rank`
    unknown dimensions; any other parameter gets a fully unknown shape.
    """
    if isinstance(f, Chain) and len(f):
        return infer_inshapes(f[0])

    try:
        signature = inspect.signature(f, eval_str=True)
    except NameError:
        signature = inspect.signature(f)
    except (TypeError, ValueError) as exc:
        raise ShapeInferenceError(
            f"Cannot inspect the inputs of {f!r}; pass input shapes explicitly."
        ) from exc

    shapes: list[Shape | None] = []
    for parameter in signature.parameters.values():
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            raise ShapeInferenceError(
                "Cannot infer the number of inputs of a variadic callable; "
                "pass input shapes explicitly."
            )
        if parameter.kind in _POSITIONAL_KINDS and parameter.default is inspect.Parameter.empty:
            shapes.append(_shape_from_annotation(parameter.annotation))

    if any(shape is None for shape in shapes):
        logger.warning(
            "Could not infer the rank of every input of %r; exporting unknown shapes.", f
        )
    return tuple(shapes)


def export_onnx(
    target: str | Path | IO[bytes],
    f: Callable[..., Any] | ModelProto,
    *inputs: InputDeclaration,
    **kwargs: Any,
) -> ModelProto:
    """Write the model for `f` (or an already built model) to a path or stream.

    The model is built and validated before anything is written. For paths the
    model name defaults to the file stem.
    """
    if isinstance(f, ModelProto):
        if inputs or kwargs:
            raise TypeError("Input declarations are only accepted when tracing a callable.")
        model = f
    else:
        if "options" not in kwargs and isinstance(target, (str, Path)):
            kwargs["options"] = OnnxExportOptions(model_name=Path(target).stem or "model")
        model = modelproto(f, *inputs, **kwargs)

    if isinstance(target, (str, Path)):
        path = Path(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        onnx.save_model(model, str(path))
    else:
        onnx.save_model(model, target)

    logger.info("Wrote ONNX model '%s' to %s", model.graph.name, target)
    return model


def _input_specs(
    f: Callable[..., Any],
    inputs: Sequence[InputDeclaration],
    *,
    namestrat: NamingStrategy,
    prefix: str,
) -> list[InputSpec]:
    if not inputs:
        if isinstance(f, CompGraph):
            return [
                InputSpec(name=recursename(v, namestrat), shape=v.shape) for v in f.inputs
            ]
        inputs = infer_inshapes(f)

    named = [_is_named(item) for item in inputs]
    if all(named):
        return [_as_spec(item) for item in inputs]
    if any(named):
        raise TypeError("Pass either only input shapes or only (name, shape) pairs.")
    return [
        InputSpec(name=f"{prefix}_{index}", shape=None if shape is None else tuple(shape))
        for index, shape in enumerate(inputs)
    ]


def _is_named(item: Any) -> bool:
    if isinstance(item, InputSpec):
        return True
    return isinstance(item, tuple) and len(item) == 2 and isinstance(item[0], str)


def _as_spec(item: InputSpec | tuple[str, Any]) -> InputSpec:
    if isinstance(item, InputSpec):
        return item
    name, shape = item
    return InputSpec(name=name, shape=None if shape is None else tuple(shape))


def _shape_from_annotation(annotation: Any) -> Shape | None:
    if get_origin(annotation) is not Annotated:
        return None
    base, *metadata = get_args(annotation)
    if base is not np.ndarray and get_origin(base) is not np.ndarray:
        return None
    for item in metadata:
        if isinstance(item, int) and not isinstance(item, bool) and item >= 0:
            return (None,) * item
    return None
