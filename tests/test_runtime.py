"""Tests for the onnxruntime session binding."""

from unittest.mock import MagicMock, patch

import numpy as np
import onnxruntime as ort
import pytest

from moonshine_onnx.config import RuntimeConfig
from moonshine_onnx.runtime import EngineContext, OnnxSession
from moonshine_onnx.tensor import Tensor


def _node(name: str) -> MagicMock:
    node = MagicMock()
    node.name = name
    return node


@pytest.fixture()
def model_file(tmp_path):
    path = tmp_path / "decoder.onnx"
    path.write_bytes(b"onnx")
    return path


@pytest.fixture()
def mock_session():
    session = MagicMock()
    session.get_inputs.return_value = [_node("input_ids"), _node("use_cache_branch")]
    session.get_outputs.return_value = [_node("logits"), _node("present.0.key")]
    session.run.return_value = [
        np.zeros((1, 1, 4), dtype=np.float32),
        np.ones((1, 8, 1, 36), dtype=np.float32),
    ]
    return session


def test_session_options_from_config():
    context = EngineContext(RuntimeConfig(num_threads=3, log_severity_level=3, log_id="test"))
    options = context.session_options()

    assert options.intra_op_num_threads == 3
    assert options.graph_optimization_level == ort.GraphOptimizationLevel.ORT_ENABLE_ALL
    assert options.enable_cpu_mem_arena is False
    assert options.log_severity_level == 3
    assert options.logid == "test"


def test_default_context_uses_defaults():
    context = EngineContext()
    assert context.config.num_threads == 4
    assert context.config.providers == ["CPUExecutionProvider"]


def test_missing_model_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="not a regular file"):
        OnnxSession(tmp_path / "missing.onnx", EngineContext())


def test_directory_is_not_a_model(tmp_path):
    with pytest.raises(FileNotFoundError):
        OnnxSession(tmp_path, EngineContext())


@patch("moonshine_onnx.runtime.ort.InferenceSession")
def test_engine_load_failure_wrapped(mock_session_cls, model_file):
    mock_session_cls.side_effect = Exception("INVALID_PROTOBUF")
    with pytest.raises(RuntimeError, match="Failed to load model"):
        OnnxSession(model_file, EngineContext())


@patch("moonshine_onnx.runtime.ort.InferenceSession")
def test_declared_names_resolved_once(mock_session_cls, mock_session, model_file):
    mock_session_cls.return_value = mock_session
    session = OnnxSession(model_file, EngineContext(RuntimeConfig(num_threads=2)))

    assert session.input_names == ("input_ids", "use_cache_branch")
    assert session.output_names == ("logits", "present.0.key")

    kwargs = mock_session_cls.call_args[1]
    assert kwargs["providers"] == ["CPUExecutionProvider"]
    assert kwargs["sess_options"].intra_op_num_threads == 2


@patch("moonshine_onnx.runtime.ort.InferenceSession")
def test_run_consumes_inputs_and_wraps_outputs(mock_session_cls, mock_session, model_file):
    mock_session_cls.return_value = mock_session
    session = OnnxSession(model_file, EngineContext())

    ids = Tensor(np.array([[1]], dtype=np.int64))
    flag = Tensor(np.array([False]))
    outputs = session.run([ids, flag])

    output_names, feed = mock_session.run.call_args[0]
    assert output_names == ["logits", "present.0.key"]
    assert list(feed) == ["input_ids", "use_cache_branch"]
    assert feed["input_ids"].tolist() == [[1]]
    assert not ids.is_valid
    assert not flag.is_valid
    assert [o.shape for o in outputs] == [(1, 1, 4), (1, 8, 1, 36)]


@patch("moonshine_onnx.runtime.ort.InferenceSession")
def test_run_rejects_wrong_input_count(mock_session_cls, mock_session, model_file):
    mock_session_cls.return_value = mock_session
    session = OnnxSession(model_file, EngineContext())

    with pytest.raises(ValueError, match="expects 2 inputs"):
        session.run([Tensor(np.array([[1]], dtype=np.int64))])
    mock_session.run.assert_not_called()


@patch("moonshine_onnx.runtime.ort.InferenceSession")
def test_run_after_close(mock_session_cls, mock_session, model_file):
    mock_session_cls.return_value = mock_session
    session = OnnxSession(model_file, EngineContext())

    session.close()
    session.close()

    with pytest.raises(RuntimeError, match="closed"):
        session.run([Tensor(np.zeros(1)), Tensor(np.zeros(1))])
