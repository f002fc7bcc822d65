import io

from engine import Engine
from parser_cmd import InsertCommand, LookupCommand, SnapshotCommand, SnapshotOp


def run(engine, text):
    out = io.StringIO()
    engine.run(io.StringIO(text), out)
    return out.getvalue().splitlines()


def test_basic_session():
    e = Engine()
    lines = run(e, "+ a 1\n+ A 2\n+ aa 18446744073709551615\nA\naa\n- A\n- a\na\n")
    assert lines == ["OK", "Exist", "OK", "OK: 1", "OK: 18446744073709551615",
                     "OK", "NoSuchWord", "NoSuchWord"]


def test_save_and_load_between_engines(tmp_path):
    path = tmp_path / "store.bin"
    first = Engine()
    assert run(first, f"+ one 1\n+ Two 2\n! Save {path}\n") == ["OK", "OK", "OK"]

    second = Engine()
    assert run(second, f"+ stale 9\n! Load {path}\nstale\ntwo\nONE\n") == [
        "OK", "OK", "NoSuchWord", "OK: 2", "OK: 1"]


def test_snapshot_errors_are_reported(tmp_path):
    e = Engine()
    lines = run(e, f"+ keep 1\n! Load {tmp_path / 'missing.bin'}\n"
                   f"! Save {tmp_path / 'no' / 'dir.bin'}\n! Dump x\nkeep\n")
    assert lines[0] == "OK"
    assert lines[1].startswith("ERROR: cannot open file for reading")
    assert lines[2].startswith("ERROR: cannot open file for writing")
    assert lines[3] == "ERROR: unknown operation"
    assert lines[4] == "OK: 1"


def test_corrupt_snapshot_keeps_state(tmp_path):
    path = tmp_path / "bad.bin"
    path.write_bytes(b"\x05\x00\x00\x00\x00\x00\x00\x00\x01\x00")
    e = Engine()
    lines = run(e, f"+ x 3\n! Load {path}\nx\n")
    assert lines[1].startswith("ERROR: invalid format")
    assert lines[2] == "OK: 3"


def test_bad_value_does_not_stop_the_loop():
    e = Engine()
    lines = run(e, "+ k nope\n+ k 4\nk\n")
    assert lines[0].startswith("ERROR:")
    assert lines[1:] == ["OK", "OK: 4"]


def test_run_returns_number_of_commands():
    assert Engine().run(io.StringIO("+ a 1\na\n- a\n+ b"), io.StringIO()) == 3


def test_execute_single_commands(tmp_path):
    e = Engine()
    assert e.execute(InsertCommand(key="K", value=0)) == "OK"
    assert e.execute(LookupCommand(key="k")) == "OK: 0"
    path = str(tmp_path / "s.bin")
    assert e.execute(SnapshotCommand(op=SnapshotOp.SAVE, path=path)) == "OK"
    assert e.execute(InsertCommand(key="x" * 65536, value=1)).startswith("ERROR:")
