"""
Test cases for the CLI module (cli.py)
"""

import json
import os
import sys
import tempfile
from unittest.mock import patch, MagicMock

import pytest
import numpy as np

from cli import load_data, write_assignments, train_command, validate_command, main


def _write_temp(content: str, suffix: str) -> str:
    with tempfile.NamedTemporaryFile(mode="w", suffix=suffix, delete=False) as f:
        f.write(content)
        return f.name


@pytest.fixture
def sample_csv_file():
    """Headed CSV with five rows and three columns"""
    return _write_temp(
        "a,b,c\n1.0,2.0,3.0\n4.0,5.0,6.5\n7.0,8.0,9.0\n2.0,1.0,0.5\n3.5,6.0,2.0\n",
        ".csv",
    )


@pytest.fixture
def sample_json_file():
    data = [[1.0, 2.0, 3.0], [4.0, 5.0, 6.0], [7.0, 8.0, 9.5]]
    with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
        json.dump(data, f)
        return f.name


@pytest.fixture
def sample_npy_file():
    data = np.array([[1.0, 2.0], [4.0, 5.0], [7.0, 8.0]], dtype=np.float32)
    with tempfile.NamedTemporaryFile(suffix=".npy", delete=False) as f:
        np.save(f.name, data)
        return f.name


@pytest.fixture
def sample_npz_file():
    data = np.array([[1.0, 2.0], [4.0, 5.0], [7.0, 8.0]], dtype=np.float32)
    with tempfile.NamedTemporaryFile(suffix=".npz", delete=False) as f:
        np.savez(f.name, data=data)
        return f.name


@pytest.mark.cli
@pytest.mark.io
class TestLoadData:
    """Tests for load_data function"""

    def test_load_csv_file(self, sample_csv_file):
        data = load_data(sample_csv_file)
        assert isinstance(data, np.ndarray)
        assert data.shape == (5, 3)
        assert data.dtype == np.float64
        assert data[1, 2] == 6.5

    def test_load_csv_with_spaces(self):
        path = _write_temp("x, y\n1, 2\n3,4\n5,  6\n", ".csv")
        data = load_data(path, "csv")
        np.testing.assert_array_equal(data, [[1, 2], [3, 4], [5, 6]])

    def test_load_json_file(self, sample_json_file):
        data = load_data(sample_json_file)
        assert data.shape == (3, 3)
        assert data.dtype == np.float64

    def test_load_npy_file(self, sample_npy_file):
        data = load_data(sample_npy_file)
        assert data.shape == (3, 2)
        assert data.dtype == np.float64

    def test_load_npz_file(self, sample_npz_file):
        data = load_data(sample_npz_file)
        assert data.shape == (3, 2)
        assert data.dtype == np.float64

    def test_load_nonexistent_file(self):
        with pytest.raises(FileNotFoundError):
            load_data("nonexistent.csv")

    def test_load_unsupported_format(self, sample_csv_file):
        with pytest.raises(ValueError, match="Unsupported format"):
            load_data(sample_csv_file, "txt")

    def test_load_single_column_csv(self):
        path = _write_temp("a\n1\n2\n3\n", ".csv")
        with pytest.raises(ValueError, match="at least two columns"):
            load_data(path)

    def test_load_non_numeric_csv(self):
        path = _write_temp("a,b\n1,2\n3,four\n5,6\n", ".csv")
        with pytest.raises(ValueError, match="only numeric data"):
            load_data(path)

    def test_load_short_row_csv(self):
        path = _write_temp("a,b,c\n1,2,3\n4,5\n7,8,9\n", ".csv")
        with pytest.raises(ValueError, match="one number for every column"):
            load_data(path)

    def test_load_too_few_rows_csv(self):
        path = _write_temp("a,b,c\n1,2,3\n4,5,6\n", ".csv")
        with pytest.raises(ValueError, match="at least as many data rows"):
            load_data(path)

    def test_load_invalid_json(self):
        path = _write_temp("{invalid json}", ".json")
        with pytest.raises(ValueError, match="Failed to load data"):
            load_data(path)


@pytest.mark.cli
@pytest.mark.io
class TestWriteAssignments:
    """Tests for write_assignments function"""

    def test_writes_one_entry_per_observation(self, trained_som):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "out.json")
            write_assignments(trained_som, path)
            with open(path) as f:
                results = json.load(f)

        assert results["width"] == 3
        assert results["height"] == 3
        assert len(results["nodes"]) == 50
        assert len(results["distances"]) == 50
        assert sum(results["node_counts"]) == 50
        assert results["nodes"] == trained_som.get_nodes().tolist()


@pytest.mark.cli
@pytest.mark.unit
class TestTrainCommand:
    """Tests for train_command function"""

    @pytest.fixture
    def train_args(self, sample_csv_file):
        args = MagicMock()
        args.input = sample_csv_file
        args.format = "auto"
        args.width = 2
        args.height = 2
        args.epochs = 5
        args.seed = 42
        args.verbose = False
        args.output = os.path.join(tempfile.mkdtemp(), "assignments.json")
        args.plot = None
        args.channel = "red"
        return args

    def test_train_command_success(self, train_args):
        with patch("builtins.print") as mock_print:
            train_command(train_args)

        print_calls = [call[0][0] for call in mock_print.call_args_list]
        assert any("Training completed!" in call for call in print_calls)
        assert any("Quantization Error" in call for call in print_calls)

        with open(train_args.output) as f:
            results = json.load(f)
        assert len(results["nodes"]) == 5
        assert all(0 <= node < 4 for node in results["nodes"])

    def test_train_command_is_reproducible(self, train_args):
        with patch("builtins.print"):
            train_command(train_args)
            with open(train_args.output) as f:
                first = json.load(f)
            train_command(train_args)
            with open(train_args.output) as f:
                second = json.load(f)
        assert first == second

    def test_train_command_with_plot(self, train_args):
        train_args.plot = os.path.join(tempfile.mkdtemp(), "counts.png")
        train_args.channel = "blue"

        with patch("builtins.print"):
            train_command(train_args)

        assert os.path.getsize(train_args.plot) > 0

    def test_train_command_data_loading_error(self, train_args):
        with patch("cli.load_data", side_effect=Exception("Load failed")):
            with patch("sys.exit") as mock_exit:
                with patch("builtins.print") as mock_print:
                    train_command(train_args)
                    mock_exit.assert_called_with(1)
                    mock_print.assert_called_with("Error: Load failed", file=sys.stderr)

    def test_train_command_map_too_large(self, train_args):
        train_args.width = 3
        train_args.height = 3

        with patch("builtins.print"):
            with pytest.raises(SystemExit) as exc_info:
                train_command(train_args)
        assert exc_info.value.code == 1


@pytest.mark.cli
@pytest.mark.unit
class TestValidateCommand:
    """Tests for validate_command function"""

    def test_validate_reports_statistics(self, sample_csv_file, capsys):
        args = MagicMock()
        args.input = sample_csv_file
        args.format = "auto"

        validate_command(args)

        out = capsys.readouterr().out
        assert "Data shape: (5, 3)" in out
        assert "0: mean=3.5000" in out
        assert "Zero-variance column: False" in out
        assert "Largest map: 5 nodes" in out

    def test_validate_flags_constant_column(self, capsys):
        args = MagicMock()
        args.input = _write_temp("a,b\n1,5\n1,6\n1,7\n", ".csv")
        args.format = "csv"

        validate_command(args)

        assert "Zero-variance column: True" in capsys.readouterr().out

    def test_validate_bad_file(self):
        args = MagicMock()
        args.input = "missing.csv"
        args.format = "auto"

        with patch("sys.exit") as mock_exit:
            with patch("builtins.print"):
                validate_command(args)
                mock_exit.assert_called_with(1)


@pytest.mark.cli
@pytest.mark.unit
class TestMainFunction:
    """Tests for main function and argument parsing"""

    def test_main_no_args(self):
        with patch("sys.argv", ["cli.py"]):
            with patch("sys.exit") as mock_exit:
                with patch("builtins.print"):
                    main()
                    mock_exit.assert_called_with(1)

    def test_main_train_command(self, sample_csv_file):
        args = ["cli.py", "train", sample_csv_file, "--width", "2", "--height", "2"]

        with patch("sys.argv", args):
            with patch("cli.train_command") as mock_train:
                main()
                mock_train.assert_called_once()
                parsed = mock_train.call_args[0][0]
                assert parsed.width == 2
                assert parsed.epochs == 20
                assert parsed.channel == "red"
                assert parsed.seed is None

    def test_main_validate_command(self, sample_csv_file):
        with patch("sys.argv", ["cli.py", "validate", sample_csv_file]):
            with patch("cli.validate_command") as mock_validate:
                main()
                mock_validate.assert_called_once()

    def test_main_version_command(self):
        with patch("sys.argv", ["cli.py", "version"]):
            with patch("builtins.print") as mock_print:
                main()
                mock_print.assert_called_with("Kohonen SOM CLI v0.1.0")

    def test_main_rejects_unknown_channel(self, sample_csv_file):
        args = ["cli.py", "train", sample_csv_file, "--channel", "purple"]
        with patch("sys.argv", args):
            with pytest.raises(SystemExit):
                main()
