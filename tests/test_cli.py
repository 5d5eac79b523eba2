from itemcf.cli import build_parser, main
from itemcf.state import Phase
from itemcf.storage import read_recommendations


def _write_prefs(tmp_path, text):
    path = tmp_path / "prefs.csv"
    path.write_text(text, encoding="utf-8")
    return path


def test_main_writes_recommendations(tmp_path):
    prefs = _write_prefs(tmp_path, "1,10,1\n1,11,2\n2,12,1\n2,11,1\n")
    out = tmp_path / "recs.txt"

    code = main([
        "--input", str(prefs),
        "--output", str(out),
        "--temp-dir", str(tmp_path / "tmp"),
        "-n", "1",
        "--log-level", "WARNING",
    ])

    assert code == 0
    recs = read_recommendations(out)
    assert all(len(items) == 1 for items in recs.values())


def test_main_returns_nonzero_on_bad_input(tmp_path):
    prefs = _write_prefs(tmp_path, "1,10,1\nnot-a-user,11,2\n")

    code = main([
        "--input", str(prefs),
        "--output", str(tmp_path / "recs.txt"),
        "--temp-dir", str(tmp_path / "tmp"),
        "--log-level", "ERROR",
    ])

    assert code == 1
    assert not (tmp_path / "recs.txt").exists()


def test_main_rejects_inverted_phase_range(tmp_path):
    prefs = _write_prefs(tmp_path, "1,10,1\n")

    code = main([
        "--input", str(prefs),
        "--start-phase", "cooccurrence",
        "--end-phase", "1",
        "--log-level", "ERROR",
    ])

    assert code == 1


def test_phase_arguments_accept_names_and_numbers():
    args = build_parser().parse_args(["--start-phase", "partial_multiply", "--end-phase", "4"])
    assert args.start_phase is Phase.PARTIAL_MULTIPLY
    assert args.end_phase is Phase.AGGREGATE_AND_RECOMMEND
