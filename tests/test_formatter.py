import pytest

from evtdecomp.formatter import SourceWriter


def test_indentation_follows_context_manager() -> None:
    writer = SourceWriter(indent="  ")
    writer.write_line("loop {")
    with writer.indented():
        writer.write_line("wait 1")
        with writer.indented():
            writer.write_line("return")
    writer.write_line("}")

    assert writer.render() == "loop {\n  wait 1\n    return\n}\n"


def test_indentation_is_restored_after_errors() -> None:
    writer = SourceWriter()
    with pytest.raises(RuntimeError):
        with writer.indented():
            raise RuntimeError("boom")
    writer.write_line("return")
    assert writer.render() == "return\n"


def test_dedent_underflow_is_an_error() -> None:
    with pytest.raises(ValueError, match="underflow"):
        SourceWriter().dedent()
