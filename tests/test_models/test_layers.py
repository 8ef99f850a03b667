from __future__ import annotations

import numpy as np
import pytest

from onnxtrace.models import (
    BatchNorm,
    Chain,
    Conv,
    Dense,
    Dropout,
    LSTMCell,
    MaxPool,
    Recur,
    RNNCell,
    relu,
    reshape,
)


def test_dense_create_uses_out_in_weights(rng) -> None:
    layer = Dense.create(5, 3, rng=rng)

    assert layer.weight.shape == (3, 5)
    assert layer.weight.dtype == np.float32
    assert (layer.in_features, layer.out_features) == (5, 3)
    np.testing.assert_array_equal(layer.bias, np.zeros(3))


def test_dense_rejects_mismatched_bias() -> None:
    with pytest.raises(ValueError):
        Dense(weight=np.zeros((3, 5)), bias=np.zeros(5))


def test_conv_normalizes_hyperparameters(rng) -> None:
    layer = Conv.create((3, 3), (1, 4), stride=2, pad=1, rng=rng)

    assert layer.weight.shape == (3, 3, 1, 4)
    assert layer.stride == (2, 2)
    assert layer.pad == (1, 1)
    assert layer.dilation == (1, 1)
    assert layer.kernel == (3, 3)
    assert layer.out_channels == 4


def test_conv_accepts_asymmetric_padding_only_with_matching_length() -> None:
    assert Conv(weight=np.zeros((3, 3, 1, 1)), pad=(0, 1, 2, 3)).pad == (0, 1, 2, 3)

    with pytest.raises(ValueError):
        Conv(weight=np.zeros((3, 3, 1, 1)), pad=(0, 1, 2))


def test_pool_stride_defaults_to_window() -> None:
    assert MaxPool((2, 3)).stride == (2, 3)
    assert MaxPool((2, 3), stride=1).stride == (1, 1)


def test_batchnorm_parameters_must_share_channels() -> None:
    assert BatchNorm.create(3).channels == 3

    with pytest.raises(ValueError):
        BatchNorm(beta=np.zeros(3), gamma=np.ones(2), mu=np.zeros(3), sigma2=np.ones(3))


def test_dropout_probability_range() -> None:
    with pytest.raises(ValueError):
        Dropout(1.0)


def test_recurrent_cells_shape_their_parameters(rng) -> None:
    rnn = RNNCell.create(4, 8, rng=rng)
    lstm = LSTMCell.create(4, 8, rng=rng)

    assert rnn.Wi.shape == (8, 4)
    assert lstm.Wi.shape == (32, 4)
    assert lstm.Wh.shape == (32, 8)
    assert (lstm.in_features, lstm.hidden_size) == (4, 8)
    np.testing.assert_array_equal(Recur(rnn).state, np.zeros(8))


def test_recurrent_cell_rejects_inconsistent_gates() -> None:
    with pytest.raises(ValueError):
        LSTMCell(Wi=np.zeros((8, 4)), Wh=np.zeros((8, 3)), b=np.zeros(8))


def test_chain_is_a_sequence_of_layers() -> None:
    first, second = Dense.create(2, 2), Dense.create(2, 2)
    chain = Chain(first, second)

    assert len(chain) == 2
    assert chain[0] is first
    assert list(chain) == [first, second]


@pytest.mark.parametrize(
    "call",
    [
        lambda x: Dense.create(2, 2)(x),
        lambda x: relu(x),
        lambda x: reshape(x, 2, -1),
    ],
)
def test_host_operations_require_traced_values(call) -> None:
    with pytest.raises(TypeError, match="traced values"):
        call(np.zeros((2, 2), dtype=np.float32))
