from promscout.query.escaping import escape_label_value, label_matcher, unescape_label_value


def test_escape_plain_value_unchanged() -> None:
    assert escape_label_value("web-1") == "web-1"


def test_escape_quotes_and_backslashes() -> None:
    assert escape_label_value('a"b') == 'a\\"b'
    assert escape_label_value("a\\b") == "a\\\\b"


def test_backslash_escaped_before_quote() -> None:
    # a trailing backslash followed by a quote must not produce an escaped quote
    assert escape_label_value('x\\"') == 'x\\\\\\"'


def test_unescape_reverses_escape() -> None:
    for value in ["plain", 'quo"te', "back\\slash", 'both\\"', '"', "\\\\"]:
        assert unescape_label_value(escape_label_value(value)) == value


def test_label_matcher_escapes_value() -> None:
    assert label_matcher("pod", 'x"}) or vector(1) #') == 'pod="x\\"}) or vector(1) #"'
    assert label_matcher("namespace", "prod", "=~") == 'namespace=~"prod"'
