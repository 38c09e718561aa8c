import importlib.util
import json
import os

DEMO_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "scripts", "demo.py"))


def load_demo():
    spec = importlib.util.spec_from_file_location("demo", DEMO_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_demo_walkthrough(tmp_path, capsys):
    """Test the full demo walkthrough and its saved results."""
    output_file = tmp_path / "demo-results.json"
    results = load_demo().main(output_file=str(output_file))

    assert results["partsRegistered"] == 3
    assert results["stakeholders"] == 4
    assert results["custodyTransfers"] == 3
    assert results["maintenanceRecords"] == 2
    assert results["partOneAuthentic"] is True

    saved = json.loads(output_file.read_text())
    assert saved == results
    assert "Demo Completed Successfully!" in capsys.readouterr().out
