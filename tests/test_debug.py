import io

from eipsec.debug import Category, IpsecLog
from eipsec.types import Audit, Status


def make_log(categories=None):
    stream = io.StringIO()
    if categories is None:
        return IpsecLog(stream), stream
    return IpsecLog(stream, categories), stream


def test_error_line_layout():
    log, stream = make_log()
    log.error("ipsecdev_input", Status.FAILURE, "dropping packet")
    assert stream.getvalue() == (
        "ERR ipsecdev_input              :        -2 : dropping packet\n"
    )


def test_message_line_layout():
    log, stream = make_log()
    log.message("dumpdev_input", "receiving data:")
    assert stream.getvalue() == "MSG dumpdev_input               : receiving data:\n"


def test_audit_columns():
    log, stream = make_log()
    name = "ipsecdev_output"
    log.audit(name, Audit.BYPASS, "forwarding")
    line = stream.getvalue()
    assert line.startswith("AUD " + name)
    assert line.index(":") == 4 + 28
    assert line.endswith(" : forwarding\n")
    assert line.split(":")[1].strip() == str(int(Audit.BYPASS))


def test_test_line_right_aligns_code():
    log, stream = make_log()
    log.test("test_spd_init", "FAILURE", "spd_inbound: unable")
    line = stream.getvalue()
    assert line.startswith("TST test_spd_init")
    assert "  FAILURE : spd_inbound: unable\n" in line
    assert line.index(":") == 4 + 28


def test_long_function_name_is_not_cut():
    log, stream = make_log()
    name = "x" * 40
    log.message(name, "hello")
    assert stream.getvalue() == f"MSG {name}: hello\n"


def test_debug_disabled_by_default():
    log, stream = make_log()
    log.debug("f", Status.DATA_SIZE_ERROR, "too long")
    assert stream.getvalue() == ""


def test_debug_enabled_when_requested():
    log, stream = make_log(Category.DEBUG)
    log.debug("f", Status.DATA_SIZE_ERROR, "too long")
    log.error("f", Status.FAILURE, "hidden")
    lines = stream.getvalue().splitlines()
    assert len(lines) == 1
    assert lines[0].startswith("DBG f")
    assert lines[0].endswith(" : too long")


def test_trace_disabled_by_default():
    log, stream = make_log()
    log.enter("func", "a=1")
    log.leave("func", "void")
    assert stream.getvalue() == ""
    assert log.trace_depth == 0


def test_trace_indentation_nests():
    log, stream = make_log(Category.TRACE)
    log.enter("outer", "p=1")
    log.enter("inner", "q=2")
    log.leave("inner", "ret")
    log.leave("outer", "void")
    assert stream.getvalue().splitlines() == [
        "  ENTER  outer(p=1)",
        "    ENTER  inner(q=2)",
        "    RETURN inner(ret)",
        "  RETURN outer(void)",
    ]
    assert log.trace_depth == 0


def test_no_categories_writes_nothing():
    log, stream = make_log(Category(0))
    log.error("f", 1, "a")
    log.message("f", "b")
    log.audit("f", 2, "c")
    log.test("f", "SUCCESS", "d")
    assert stream.getvalue() == ""


def test_default_stream_is_stdout(capsys):
    log = IpsecLog()
    log.message("f", "to stdout")
    captured = capsys.readouterr()
    assert captured.out.endswith(": to stdout\n")
    assert captured.out.startswith("MSG f")