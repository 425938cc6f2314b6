import json
from pathlib import Path

import numpy as np
import pandas as pd

from facegeom.config import SessionConfig
from scripts import manage_prototypes, replay_session


def write_frames(path: Path, faces, step_ms: float = 100.0) -> None:
    with path.open("w", encoding="utf-8") as fh:
        for idx, face in enumerate(faces):
            payload = {
                "timestamp_ms": idx * step_ms,
                "faces": [] if face is None else [np.asarray(face).tolist()],
            }
            fh.write(json.dumps(payload) + "\n")


def test_replay_parse_args_defaults():
    args = replay_session.parse_args(["frames.jsonl"])
    assert args.frames == Path("frames.jsonl")
    assert args.k is None
    assert args.zone_weighting is None
    assert args.predict is False


def test_resolve_config_prefers_cli_over_config():
    config = SessionConfig(k=5, threshold=1.0, zone_weighting=True)
    args = replay_session.parse_args(["f.jsonl", "--k", "2", "--no-zone-weighting"])

    resolved = replay_session._resolve_config(args, config)

    assert resolved.k == 2
    assert resolved.threshold == 1.0
    assert resolved.zone_weighting is False


def test_replay_enroll_predict_and_export(tmp_path: Path, monkeypatch, face_factory):
    monkeypatch.chdir(tmp_path)
    face = face_factory(0)
    frames_path = tmp_path / "frames.jsonl"
    write_frames(frames_path, [face] * 40, step_ms=250.0)
    export_path = tmp_path / "prototypes.json"
    csv_path = tmp_path / "predictions.csv"

    code = replay_session.main(
        [
            str(frames_path),
            "--enroll",
            "Ana",
            "--predict",
            "--threshold",
            "0.5",
            "--export",
            str(export_path),
            "--predictions-csv",
            str(csv_path),
        ]
    )

    assert code == 0
    exported = json.loads(export_path.read_text(encoding="utf-8"))
    # 3 s window, one frame every 250 ms
    assert exported["Ana"]["sampleCount"] == 12
    predictions = pd.read_csv(csv_path)
    predicted = predictions[predictions["status"] == "predicted"]
    assert not predicted.empty
    assert set(predicted["label"]) == {"Ana"}


def test_replay_fails_when_enrollment_sees_no_face(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    frames_path = tmp_path / "frames.jsonl"
    write_frames(frames_path, [None] * 5, step_ms=250.0)

    code = replay_session.main([str(frames_path), "--enroll", "Ana"])

    assert code == 1


def test_replay_predict_requires_prototypes(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    frames_path = tmp_path / "frames.jsonl"
    write_frames(frames_path, [None])

    assert replay_session.main([str(frames_path), "--predict"]) == 1


def test_manage_prototypes_commands(tmp_path: Path, capsys):
    store_path = tmp_path / "store.json"
    store_path.write_text(
        json.dumps({"Ana": {"vector": [0.0, 1.0], "sampleCount": 4}, "Bea": [1.0, 1.0]}),
        encoding="utf-8",
    )
    other_path = tmp_path / "other.json"
    other_path.write_text(json.dumps({"Bea": [2.0, 2.0], "Cai": [3.0, 3.0]}), encoding="utf-8")

    assert manage_prototypes.main([str(store_path), "list"]) == 0
    listing = capsys.readouterr().out
    assert "Ana" in listing and "Bea" in listing

    assert manage_prototypes.main([str(store_path), "merge", str(other_path)]) == 0
    merged = json.loads(store_path.read_text(encoding="utf-8"))
    assert sorted(merged) == ["Ana", "Bea", "Cai"]
    assert merged["Bea"]["vector"] == [2.0, 2.0]

    assert manage_prototypes.main([str(store_path), "remove", "Ana"]) == 0
    assert manage_prototypes.main([str(store_path), "remove", "Ana"]) == 1

    assert manage_prototypes.main([str(store_path), "convert", "--legacy"]) == 0
    assert json.loads(store_path.read_text(encoding="utf-8")) == {"Bea": [2.0, 2.0], "Cai": [3.0, 3.0]}

    assert manage_prototypes.main([str(store_path), "clear"]) == 0
    assert json.loads(store_path.read_text(encoding="utf-8")) == {}


def test_manage_prototypes_rejects_malformed_store(tmp_path: Path):
    store_path = tmp_path / "store.json"
    store_path.write_text("[1, 2, 3]", encoding="utf-8")
    assert manage_prototypes.main([str(store_path), "list"]) == 1


def test_replay_keeps_going_on_dimension_mismatch(tmp_path: Path, monkeypatch, face_factory):
    monkeypatch.chdir(tmp_path)
    frames_path = tmp_path / "frames.jsonl"
    write_frames(frames_path, [face_factory(0)] * 4, step_ms=250.0)
    prototypes_path = tmp_path / "legacy.json"
    prototypes_path.write_text(json.dumps({"Ana": [0.0, 0.0]}), encoding="utf-8")
    export_path = tmp_path / "out.json"
    csv_path = tmp_path / "predictions.csv"

    code = replay_session.main(
        [
            str(frames_path),
            "--prototypes",
            str(prototypes_path),
            "--predict",
            "--predictions-csv",
            str(csv_path),
            "--export",
            str(export_path),
        ]
    )

    assert code == 0
    predictions = pd.read_csv(csv_path)
    assert len(predictions) == 4
    assert set(predictions["status"]) == {"invalid_dimension"}
    assert json.loads(export_path.read_text(encoding="utf-8"))["Ana"] == {"vector": [0.0, 0.0], "sampleCount": 1}
