import pytest
from helpers import sleeper

from critpath.core.config import TracerConfig
from critpath.core.errors import StepSpecError
from critpath.core.models import Parallel, Severity, Step
from critpath.tracer.recommend import generate_recommendations
from critpath.tracer.trace import trace_path


class TestTracePath:
    def test_total_is_sum_of_steps(self) -> None:
        trace = trace_path(
            "Test Operation",
            [
                Step(name="Step 1", operation=sleeper(10)),
                Step(name="Step 2", operation=sleeper(5)),
                Parallel(name="Group", operations=(sleeper(3), sleeper(4))),
            ],
        )
        assert trace.name == "Test Operation"
        assert len(trace.steps) == 3
        assert trace.total_duration_us == sum(
            s.duration_us for s in trace.steps
        )
        assert trace.total_duration_us >= 15_000

    def test_dominant_step_becomes_critical_bottleneck(self) -> None:
        trace = trace_path(
            "Bottleneck Test",
            [
                Step(name="Fast Step", operation=sleeper(1)),
                Step(name="Slow Step", operation=sleeper(50)),
                Step(name="Medium Step", operation=sleeper(10)),
            ],
        )
        slow = next(b for b in trace.bottlenecks if b.step_name == "Slow Step")
        assert slow.severity == Severity.CRITICAL
        assert slow.percentage > 40
        assert trace.recommendations[0].startswith("Critical: Slow Step")

    def test_recommendations_match_a_fresh_derivation(self) -> None:
        trace = trace_path(
            "Pure",
            [
                Step(name="Ok", operation=sleeper(2)),
                Step(name="Broken", operation=lambda: 1 / 0),
            ],
        )
        assert list(trace.recommendations) == generate_recommendations(trace)
        assert any(
            "Errors detected in 1 steps" in r for r in trace.recommendations
        )

    def test_metadata_is_copied(self) -> None:
        metadata = {"build": "abc123"}
        trace = trace_path(
            "Meta",
            [Step(name="Noop", operation=lambda: None)],
            metadata=metadata,
        )
        metadata["build"] = "changed"
        assert trace.metadata == {"build": "abc123"}

    def test_metadata_cannot_be_changed(self) -> None:
        trace = trace_path(
            "Meta",
            [Step(name="Noop", operation=lambda: None)],
            metadata={"k": 1},
        )
        with pytest.raises(TypeError):
            trace.metadata["k"] = 2
        with pytest.raises(TypeError):
            del trace.metadata["k"]
        assert trace.metadata == {"k": 1}
        assert trace.model_dump()["metadata"] == {"k": 1}

    def test_trace_is_frozen(self) -> None:
        trace = trace_path(
            "Frozen", [Step(name="Noop", operation=lambda: None)]
        )
        with pytest.raises(ValueError):
            trace.name = "Other"

    def test_save_results_writes_record(self, tmp_path) -> None:
        config = TracerConfig(results_dir=tmp_path)
        trace_path(
            "Saved Path",
            [Step(name="Noop", operation=lambda: None)],
            config=config,
            save_results=True,
        )
        [written] = list(tmp_path.glob("Saved_Path_*.json"))
        assert written.is_file()

    def test_malformed_path_raises(self) -> None:
        with pytest.raises(StepSpecError):
            trace_path("Broken", [object()])
