import pytest

from pje_automation.browser.agent.text_scanner import ButtonTextScanner


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Adicionar Órgão Julgador", True),
        ("Adicionar Órgão Julgador ao Perito", True),
        ("Adicionar Julgador", True),
        ("Remover Órgão", False),
        ("Adicionar Servidor", False),
        ("adicionar órgão julgador", False),
        ("", False),
        (None, False),
    ],
)
def test_matches_requires_verb_and_any_noun(text, expected):
    assert ButtonTextScanner().matches(text) is expected


@pytest.mark.asyncio
async def test_find_label_returns_first_matching_button(make_page):
    page = make_page(
        elements=[
            {"text": "Adicionar Servidor"},
            {"text": " Adicionar Órgão Julgador "},
            {"text": "Adicionar Órgão"},
        ]
    )

    label = await ButtonTextScanner().find_label(page)

    assert label == "Adicionar Órgão Julgador"
    assert page.evaluate_calls == 1


@pytest.mark.asyncio
async def test_find_label_ignores_non_buttons(make_page):
    page = make_page(elements=[{"text": "Adicionar Órgão Julgador", "tag": "span"}])

    assert await ButtonTextScanner().find_label(page) is None


def test_scanner_needs_verb_and_nouns():
    with pytest.raises(ValueError):
        ButtonTextScanner(verb="", nouns=("Órgão",))
    with pytest.raises(ValueError):
        ButtonTextScanner(nouns=())


@pytest.mark.asyncio
@pytest.mark.parametrize("label", ["Remover Órgão", "Adicionar Servidor"])
async def test_find_label_turns_down_other_buttons(make_page, label):
    page = make_page(elements=[{"text": label}, {"text": "Cancelar"}])

    assert await ButtonTextScanner().find_label(page) is None
