"""End-to-end tests for the mix engine with in-memory collaborators."""

import itertools
import random

import pytest

from fakes import VOCABULARY, FakeCatalog, FakeGenerator, FakeVocabulary, record
from smartcook.config import settings
from smartcook.errors import MixValidationError
from smartcook.services.matching.similarity import normalize, similarity
from smartcook.services.mix import MixEngine, MixState


def _engine(catalog=None, generator=None, vocabulary=None):
    return MixEngine(
        catalog=catalog or FakeCatalog(),
        vocabulary=vocabulary or FakeVocabulary(VOCABULARY),
        generator=generator or FakeGenerator(),
    )


def test_scenario_a_partial_catalog_filled_by_one_generation():
    catalog = FakeCatalog(
        {
            "xào": [record("r1", "Gà xào sả ớt", "xào", ["thịt gà", "hành lá", "sả"])],
            "canh": [record("r2", "Canh cà rốt", "canh", ["cà rốt", "hành lá"])],
        }
    )
    generator = FakeGenerator()
    response = _engine(catalog, generator).generate(
        {"ingredients": ["ca ro", "thit ga", "hanh la"], "desired_count": 3}
    )

    assert [r.id for r in response.recipes] == ["r1", "r2", "gen-hấp"]
    assert response.stats.from_catalog == 2
    assert response.stats.from_generated == 1
    assert response.stats.coverage_pct == 67
    assert [c.technique for c in generator.calls] == ["hấp"]
    assert response.cost_estimate == pytest.approx(0.04)
    assert response.recipes[2].provenance == "generated"
    assert response.recipes[2].is_approved is False
    # "ca ro" was corrected, so the generator sees the canonical name
    assert "cà rốt" in generator.calls[0].ingredients


def test_scenario_b_total_failure_is_empty_success():
    catalog = FakeCatalog(failing=settings.default_techniques)
    response = _engine(catalog, FakeGenerator(fail_all=True)).generate(
        {"ingredients": ["thit ga"], "desired_count": 3}
    )
    assert response.recipes == []
    assert response.stats.from_catalog == 0
    assert response.stats.from_generated == 0
    assert response.stats.coverage_pct == 0
    assert response.cost_estimate == 0
    assert response.states[-1] == MixState.FINALIZED.value


def test_scenario_c_allergen_falls_through_to_next_ranked():
    catalog = FakeCatalog(
        {
            "xào": [
                record("r1", "Tôm xào bông cải", "xào", ["tôm xào", "bông cải"]),
                record("r2", "Gà xào hành", "xào", ["thịt gà", "hành lá"]),
            ]
        }
    )
    generator = FakeGenerator()
    response = _engine(catalog, generator).generate(
        {
            "ingredients": ["thit ga", "hanh la", "tom"],
            "desired_count": 1,
            "constraints": {"allergies": ["tôm"]},
        }
    )
    assert [r.id for r in response.recipes] == ["r2"]
    assert generator.calls == []


def test_scenario_d_duplicate_titles_first_wins():
    catalog = FakeCatalog(
        {
            "xào": [record("r1", "Gà xào sả ớt", "xào", ["thịt gà"])],
            "canh": [record("r2", "Gà xào sả ớt", "canh", ["thịt gà"])],
        }
    )
    generator = FakeGenerator()
    response = _engine(catalog, generator).generate({"ingredients": ["thit ga"], "desired_count": 2})
    ids = [r.id for r in response.recipes]
    assert ids[0] == "r1"
    assert "r2" not in ids
    # canh is not represented after dedup, so it is the first gap technique
    assert [c.technique for c in generator.calls] == ["canh"]


def test_states_reach_finalized_in_order():
    response = _engine().generate({"ingredients": ["thit ga"], "desired_count": 1})
    assert response.states == [s.value for s in MixState]


def test_preferred_techniques_come_first():
    catalog = FakeCatalog(
        {
            "xào": [record("x1", "Gà xào sả ớt", "xào", ["thịt gà"])],
            "kho": [
                record("k1", "Gà kho gừng", "kho", ["thịt gà"]),
                record("k2", "Thịt heo kho trứng", "kho", ["thịt heo"]),
            ],
        }
    )
    response = _engine(catalog).generate(
        {
            "ingredients": ["thit ga", "thit heo"],
            "desired_count": 3,
            "constraints": {"preferred_techniques": ["kho"]},
        }
    )
    assert [r.id for r in response.recipes] == ["k1", "k2", "x1"]


def test_vegetarian_filter_applies_to_generated_too():
    generator = FakeGenerator(ingredients={"xào": ["đậu hũ", "nấm"], "canh": ["thịt bò", "cải"]})
    response = _engine(generator=generator).generate(
        {
            "ingredients": ["dau hu", "nam"],
            "desired_count": 2,
            "constraints": {"dietary_restrictions": ["vegetarian"]},
        }
    )
    assert [r.technique for r in response.recipes] == ["xào"]
    assert response.stats.from_generated == 1


def test_generated_duplicate_of_catalog_title_dropped():
    catalog = FakeCatalog({"xào": [record("r1", "Canh chua cá lóc", "xào", ["cá lóc"])]})
    generator = FakeGenerator()
    response = _engine(catalog, generator).generate({"ingredients": ["ca loc"], "desired_count": 2})
    # the generated canh recipe has the same title as the catalog one
    assert [r.id for r in response.recipes] == ["r1"]
    assert [c.technique for c in generator.calls] == ["canh"]


def test_unmatched_tokens_become_warnings():
    response = _engine().generate({"ingredients": ["thit ga", "qwerty", "ca ro"], "desired_count": 1})
    messages = [w.message for w in response.warnings]
    assert any("qwerty" in m for m in messages)
    assert 'Did you mean "cà rốt"?' in messages
    assert {m.original for m in response.matches} == {"thit ga", "ca ro"}


def test_vocabulary_failure_degrades_to_raw_tokens():
    catalog = FakeCatalog({"xào": [record("r1", "Gà xào", "xào", ["thịt gà"])]})
    response = _engine(catalog, vocabulary=FakeVocabulary(fail=True)).generate(
        {"ingredients": ["thit ga"], "desired_count": 1}
    )
    assert [r.id for r in response.recipes] == ["r1"]


def test_vocabulary_loaded_once_per_request():
    vocabulary = FakeVocabulary(VOCABULARY)
    _engine(vocabulary=vocabulary).generate(
        {"ingredients": ["thit ga", "ca ro", "hanh la", "tom"], "desired_count": 2}
    )
    assert vocabulary.calls == 1


def test_malformed_catalog_record_is_flagged_not_fixed():
    catalog = FakeCatalog(
        {"xào": [{"id": "bad", "technique": "xào", "is_approved": True, "is_public": True}]}
    )
    response = _engine(catalog).generate({"ingredients": ["thit ga"], "desired_count": 1})
    assert response.rejected_records == 1
    assert all(r.id != "bad" for r in response.recipes)
    assert any("malformed" in w.message for w in response.warnings)


@pytest.mark.parametrize(
    "payload",
    [
        {"ingredients": [], "desired_count": 1},
        {"ingredients": ["  "], "desired_count": 1},
        {"ingredients": ["gà"] * 21, "desired_count": 1},
        {"ingredients": ["gà"], "desired_count": 0},
        {"ingredients": ["gà"], "desired_count": 6},
    ],
)
def test_invalid_requests_rejected_before_sourcing(payload):
    catalog = FakeCatalog()
    generator = FakeGenerator()
    with pytest.raises(MixValidationError):
        _engine(catalog, generator).generate(payload)
    assert catalog.calls == []
    assert generator.calls == []


def _random_catalog(rng):
    names = ["thịt gà", "tôm", "cà rốt", "hành lá", "thịt heo", "cá", "đậu hũ", "nấm", "sả"]
    titles = ["Gà xào sả ớt", "Gà xào sả", "Canh chua", "Canh chua tôm", "Heo kho", "Cá hấp", "Nấm luộc"]
    by_technique = {}
    counter = itertools.count()
    for technique in settings.default_techniques:
        rows = []
        for _ in range(rng.randint(0, 3)):
            rows.append(
                record(
                    f"r{next(counter)}",
                    rng.choice(titles),
                    technique,
                    rng.sample(names, rng.randint(0, 3)),
                    approved=rng.random() > 0.2,
                )
            )
        by_technique[technique] = rows
    failing = {t for t in settings.default_techniques if rng.random() < 0.2}
    return FakeCatalog(by_technique, failing=failing)


@pytest.mark.parametrize("seed", range(25))
def test_response_invariants_hold(seed):
    rng = random.Random(seed)
    desired = rng.randint(1, 5)
    allergies = rng.sample(["tôm", "cá", "nấm"], rng.randint(0, 2))
    generator = FakeGenerator(
        failing={t for t in settings.default_techniques if rng.random() < 0.3},
        ingredients={"canh": ["tôm", "rau"], "kho": ["cá", "nước dừa"]},
    )
    response = _engine(_random_catalog(rng), generator).generate(
        {
            "ingredients": rng.sample(["thit ga", "tom", "ca rot", "hanh la", "nam"], 3),
            "desired_count": desired,
            "constraints": {"allergies": allergies},
        }
    )

    assert len(response.recipes) <= desired
    for recipe in response.recipes:
        for allergen in allergies:
            assert not any(allergen in i.name.lower() for i in recipe.ingredients)
    for a, b in itertools.combinations(response.recipes, 2):
        assert similarity(normalize(a.title), normalize(b.title)) < 0.8
    stats = response.stats
    assert stats.coverage_pct == round(100 * stats.from_catalog / stats.requested)
    assert stats.from_catalog + stats.from_generated == len(response.recipes)
    assert len(generator.calls) <= desired


def test_mistyped_catalog_record_still_finalizes():
    catalog = FakeCatalog(
        {
            "xào": [
                {"id": "bad", "title": 123, "technique": "xào", "is_approved": True, "is_public": True},
                record("ok", "Gà xào sả", "xào", ["thịt gà"]),
            ]
        }
    )
    response = _engine(catalog).generate({"ingredients": ["thit ga"], "desired_count": 1})
    assert [r.id for r in response.recipes] == ["ok"]
    assert response.rejected_records == 1
    assert response.states[-1] == MixState.FINALIZED.value
