from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Annotated

import numpy as np
import onnx
import pytest
from onnx import helper, numpy_helper

from onnxtrace import export_onnx, infer_inshapes, modelproto, validate
from onnxtrace.config import IR_VERSION, OPSET_VERSION
from onnxtrace.core.exceptions import (
    ExportValidationError,
    GraphConstructionError,
    ShapeInferenceError,
    UnsupportedOperatorError,
)
from onnxtrace.export import name_unique
from onnxtrace.export.validation import validate_onnx_model_file
from onnxtrace.models import (
    BatchNorm,
    Chain,
    CompGraph,
    Conv,
    Dense,
    Dropout,
    InputVertex,
    MaxPool,
    Recur,
    RNNCell,
    add,
    cat,
    dropdims,
    globalmeanpool,
    relu,
    vertex,
)
from onnxtrace.models.layers import Layer
from onnxtrace.schemas import InputSpec, OnnxExportOptions


def _convnet(rng: np.random.Generator) -> Chain:
    return Chain(
        Conv.create((3, 3), (1, 4), rng=rng),
        Dense.create(2704, 10, rng=rng),
    )


def test_conv_dense_chain_end_to_end(rng, value_dims) -> None:
    model = modelproto(_convnet(rng), (28, 28, 1))
    graph = model.graph

    assert len(graph.node) == 2
    assert len(graph.initializer) == 4
    assert [value.name for value in graph.input] == ["data_0"]
    assert len(graph.output) == 1
    assert value_dims(graph.input[0]) == [1, 28, 28]
    assert model.ir_version == IR_VERSION
    assert [(o.domain, o.version) for o in model.opset_import] == [("", OPSET_VERSION)]
    validate(model)


@pytest.mark.parametrize(
    "build",
    [
        lambda rng: (_convnet(rng), [(28, 28, 1, None)]),
        lambda rng: (
            Chain(
                Conv.create((3, 3), (3, 8), relu, pad=1, rng=rng),
                BatchNorm.create(8, relu),
                MaxPool((2, 2)),
                Dropout(0.5),
            ),
            [(32, 32, 3, None)],
        ),
        lambda rng: (Chain(Recur(RNNCell.create(4, 8, rng=rng)), Dense.create(8, 2, rng=rng)), [(4, None, 6)]),
    ],
)
def test_models_are_topologically_ordered_with_consistent_tensors(
    rng, build, assert_topological
) -> None:
    f, shapes = build(rng)

    graph = modelproto(f, *shapes).graph

    assert_topological(graph)
    graph_inputs = {value.name for value in graph.input}
    for tensor in graph.initializer:
        assert tensor.name not in graph_inputs
        assert numpy_helper.to_array(tensor).size == int(np.prod(tensor.dims))
    names = [n.name for n in graph.node]
    assert len(set(names)) == len(names)


def test_identical_layers_get_distinct_names(rng) -> None:
    chain = Chain(Dense.create(4, 4, rng=rng), Dense.create(4, 4, rng=rng))

    graph = modelproto(chain, (4, None)).graph

    assert [n.name for n in graph.node] == ["dense_0", "dense_1"]
    assert [t.name for t in graph.initializer] == [
        "dense_0_weight",
        "dense_0_bias",
        "dense_1_weight",
        "dense_1_bias",
    ]


def test_custom_naming_strategy(rng) -> None:
    chain = Chain(Dense.create(4, 4, rng=rng), Dense.create(4, 4, rng=rng))

    graph = modelproto(chain, (4, None), namestrat=name_unique()).graph

    assert [n.name for n in graph.node] == ["dense", "dense_1"]


def test_multiple_inputs_and_outputs(value_dims) -> None:
    def f(a, b):
        return relu(a), cat(a, b, dims=1)

    graph = modelproto(f, ("left", (3, 2)), ("right", (5, 2))).graph

    assert [value.name for value in graph.input] == ["left", "right"]
    assert [value.name for value in graph.output] == ["relu_0", "concat_0"]
    assert value_dims(graph.output[1]) == [2, 8]


def test_inputs_may_be_input_specs() -> None:
    graph = modelproto(relu, InputSpec(name="pixels", shape=(3, None))).graph

    assert [value.name for value in graph.input] == ["pixels"]


def test_mixing_named_and_unnamed_inputs_is_rejected() -> None:
    with pytest.raises(TypeError):
        modelproto(add, ("a", (3,)), (3,))


def test_traced_callable_must_return_probes() -> None:
    with pytest.raises(GraphConstructionError):
        modelproto(lambda x: 1.0, (3,))


def test_unsupported_layer_aborts_the_export() -> None:
    class Flatten(Layer):
        pass

    with pytest.raises(UnsupportedOperatorError):
        modelproto(Chain(Flatten(), Dense.create(4, 2)), (4, None))


def test_compgraph_with_shared_vertex_is_traced_once(rng) -> None:
    x = InputVertex("x", (4, None))
    hidden = vertex(Dense.create(4, 4, relu, rng=rng), x, name="d1")
    out = vertex(Dense.create(4, 4, rng=rng), hidden, name="d2")
    total = vertex(add, hidden, out, name="sum")

    graph = modelproto(CompGraph(x, total)).graph

    assert [(n.op_type, n.name) for n in graph.node] == [
        ("Gemm", "d1"),
        ("Relu", "d1_relu"),
        ("Gemm", "d2"),
        ("Add", "sum"),
    ]
    assert list(graph.node[-1].input) == ["d1_relu", "d2"]
    assert [value.name for value in graph.input] == ["x"]
    assert [value.name for value in graph.output] == ["sum"]


def test_vertex_naming_override(rng) -> None:
    x = InputVertex("x", (7, 7, 4, None))
    pool = vertex(
        lambda p: globalmeanpool(p, lambda q: dropdims(q, dims=(1, 2))),
        x,
        name="pool",
        naming="gap",
    )
    head = vertex(Dense.create(4, 2, rng=rng), pool, name="head")

    graph = modelproto(CompGraph(x, head)).graph

    assert [n.name for n in graph.node] == ["gap", "gap_squeeze", "head"]


def test_unnamed_vertices_fall_back_to_running_numbers(rng) -> None:
    x = InputVertex("x", (4, None))
    first = vertex(Dense.create(4, 4, rng=rng), x)
    graph = modelproto(CompGraph(x, vertex(relu, first))).graph

    assert [value.name for value in graph.input] == ["x_0"]
    assert [n.name for n in graph.node] == ["vertex_0", "vertex_1"]


def test_infer_inshapes_from_rank_annotations() -> None:
    def f(x: Annotated[np.ndarray, 3], y: Annotated[np.ndarray, 2]):
        return x

    assert infer_inshapes(f) == ((None, None, None), (None, None))
    assert infer_inshapes(Dense.create(3, 2)) == ((None, None),)
    assert infer_inshapes(Chain(Recur(RNNCell.create(3, 2)))) == ((None, None, None),)


def test_infer_inshapes_without_annotations_gives_unknown_shapes(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="onnxtrace.export.onnx_export"):
        shapes = infer_inshapes(lambda a, b: a)

    assert shapes == (None, None)
    assert "Could not infer the rank" in caplog.text


def test_infer_inshapes_rejects_variadic_callables() -> None:
    with pytest.raises(ShapeInferenceError):
        infer_inshapes(add)


def test_modelproto_infers_inputs_when_none_are_given(value_dims) -> None:
    graph = modelproto(Dense.create(3, 2)).graph

    assert [value.name for value in graph.input] == ["data_0"]
    assert value_dims(graph.input[0]) == [None, None]


def test_unknown_input_rank_fails_before_validation(tmp_path: Path) -> None:
    target = tmp_path / "unranked.onnx"

    with pytest.raises(ShapeInferenceError, match="declare input shapes"):
        export_onnx(target, lambda x: relu(x))

    assert not target.exists()


def test_unknown_dimensions_of_a_known_rank_pass_validation(value_dims) -> None:
    model = modelproto(lambda x: relu(x), (None, None))

    validate(model)
    assert value_dims(model.graph.input[0]) == [None, None]
    assert value_dims(model.graph.output[0]) == [None, None]


def test_model_metadata_follows_options_and_settings(monkeypatch) -> None:
    monkeypatch.setenv("ONNXTRACE_PRODUCER_NAME", "lab")

    model = modelproto(
        relu,
        (3,),
        options=OnnxExportOptions(model_name="act", doc_string="  tiny   model ", model_version=2),
    )

    assert model.graph.name == "act"
    assert model.producer_name == "lab"
    assert model.producer_version == "0.1.0"
    assert model.model_version == 2
    assert model.doc_string == "tiny model"


def test_input_prefix_comes_from_settings(monkeypatch) -> None:
    monkeypatch.setenv("ONNXTRACE_INPUT_PREFIX", "input")

    graph = modelproto(relu, (3,)).graph

    assert graph.input[0].name == "input_0"


def test_posthook_failure_aborts_before_writing(tmp_path: Path) -> None:
    def reject(model: onnx.ModelProto) -> None:
        raise ExportValidationError("rejected")

    target = tmp_path / "model.onnx"
    with pytest.raises(ExportValidationError):
        export_onnx(target, relu, (3,), posthook=reject)

    assert not target.exists()


def test_validate_wraps_checker_errors() -> None:
    node = helper.make_node("Relu", ["missing"], ["y"], name="relu")
    graph = helper.make_graph(
        [node],
        "broken",
        [helper.make_tensor_value_info("x", onnx.TensorProto.FLOAT, [3])],
        [helper.make_tensor_value_info("y", onnx.TensorProto.FLOAT, [3])],
    )
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", OPSET_VERSION)])
    model.ir_version = IR_VERSION

    with pytest.raises(ExportValidationError) as exc_info:
        validate(model)

    assert exc_info.value.error_code == "VALIDATION_ERROR"


def test_export_onnx_writes_a_loadable_file(tmp_path: Path, rng) -> None:
    target = tmp_path / "nested" / "convnet.onnx"

    model = export_onnx(target, _convnet(rng), (28, 28, 1, None))

    assert target.exists()
    loaded = onnx.load(str(target))
    assert loaded.graph.name == "convnet"
    assert loaded == model
    validate_onnx_model_file(target)


def test_export_onnx_writes_to_a_stream() -> None:
    stream = io.BytesIO()

    model = export_onnx(stream, relu, (3,))

    assert onnx.load_model_from_string(stream.getvalue()) == model


def test_export_onnx_accepts_a_built_model(tmp_path: Path) -> None:
    model = modelproto(relu, (3,))
    target = tmp_path / "prebuilt.onnx"

    export_onnx(target, model)

    assert onnx.load(str(target)).graph.node[0].op_type == "Relu"
    with pytest.raises(TypeError):
        export_onnx(target, model, (3,))
