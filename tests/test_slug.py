# tests/test_slug.py
import pytest

from app.crud.studio import generate_slug


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Ink & Art", "ink-art"),
        ("Tattoo Città", "tattoo-citta"),
        ("  --Black__Work--  ", "black-work"),
        ("Señor Ñoño Tattoo", "senor-nono-tattoo"),
        ("Straße 13", "strasse-13"),
        ("Łódź Ink", "lodz-ink"),
        ("!!!", ""),
    ],
)
def test_generate_slug(name, expected):
    assert generate_slug(name) == expected


@pytest.mark.parametrize("name", ["Ink & Art", "Tattoo Città", "L'Arte del Tatuaggio"])
def test_generate_slug_is_idempotent(name):
    once = generate_slug(name)
    assert generate_slug(once) == once
