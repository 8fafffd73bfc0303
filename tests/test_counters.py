from TexPreview.counters import CounterRegistry, LabelRegistry


def test_step_resets_scoped_counters():
    counters = CounterRegistry()
    counters.define("chapter")
    counters.define("section", parent="chapter")
    counters.define("subsection", parent="section")
    counters.step("chapter")
    counters.step("section")
    counters.step("subsection")
    assert counters.step("section") == 2
    assert counters.value("subsection") == 0
    counters.step("chapter")
    assert counters.value("section") == 0


def test_step_defines_unknown_counter():
    counters = CounterRegistry()
    assert counters.step("listing") == 1
    assert "listing" in counters
    assert counters.value("missing") == 0


def test_first_label_definition_wins(caplog):
    labels = LabelRegistry()
    assert labels.register("fig:a", "1", "figure", "figure-1")
    assert not labels.register("fig:a", "2", "figure", "figure-2")
    assert labels.resolve("fig:a").number == "1"
    assert "Duplicate label" in caplog.text
    assert len(labels) == 1


def test_resolve_unknown_label_returns_none():
    assert LabelRegistry().resolve("nope") is None
