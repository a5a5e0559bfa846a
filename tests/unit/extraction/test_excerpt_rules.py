from ideagraph.services.extraction.excerpt_rules import clean_excerpts


def test_collapses_whitespace_before_measuring():
    excerpt = "Attention   mechanisms\nlet a model weigh every input token."
    assert clean_excerpts([excerpt]) == ["Attention mechanisms let a model weigh every input token."]


def test_length_bounds_are_inclusive():
    too_short = "x" * 39
    shortest = "y" * 40
    longest = "z" * 500
    too_long = "w" * 501
    assert clean_excerpts([too_short, shortest, longest, too_long]) == [shortest, longest]


def test_case_insensitive_duplicates_keep_first():
    first = "Transformers replace recurrence with attention layers."
    repeat = "TRANSFORMERS replace recurrence   with attention layers."
    other = "Positional encodings inject order into the token stream."
    assert clean_excerpts([first, repeat, other]) == [first, other]


def test_custom_bounds():
    assert clean_excerpts(["short one", "tiny"], min_length=5, max_length=20) == ["short one"]


def test_empty_input():
    assert clean_excerpts([]) == []
