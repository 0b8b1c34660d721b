"""In-memory collaborators for mix engine tests."""

import threading

from smartcook.schemas.ingredient import MasterIngredient
from smartcook.schemas.mix import GenerationRequest


def record(rid, title, technique, ingredients, approved=True, public=True, optional=()):
    return {
        "id": rid,
        "title": title,
        "technique": technique,
        "ingredients": [{"name": n, "is_optional": n in optional} for n in ingredients],
        "is_approved": approved,
        "is_public": public,
    }


class FakeCatalog:
    def __init__(self, by_technique=None, failing=()):
        self.by_technique = by_technique or {}
        self.failing = set(failing)
        self.calls = []
        self._lock = threading.Lock()

    def query_by_technique(self, technique, limit):
        with self._lock:
            self.calls.append((technique, limit))
        if technique in self.failing:
            raise RuntimeError(f"store down for {technique}")
        return list(self.by_technique.get(technique, []))[:limit]


class FakeVocabulary:
    def __init__(self, entries=None, fail=False):
        self.entries = entries or []
        self.fail = fail
        self.calls = 0

    def list_active(self):
        self.calls += 1
        if self.fail:
            raise RuntimeError("vocabulary unavailable")
        return list(self.entries)


GENERATED_TITLES = {
    "xào": "Rau muống xào tỏi",
    "canh": "Canh chua cá lóc",
    "hấp": "Bánh bao hấp nhân thịt",
    "chiên": "Chả giò chiên giòn",
    "nướng": "Sườn nướng mật ong",
    "luộc": "Bắp cải luộc chấm trứng",
    "kho": "Cá kho tộ",
}


class FakeGenerator:
    def __init__(self, failing=(), fail_all=False, titles=None, ingredients=None):
        self.failing = set(failing)
        self.fail_all = fail_all
        self.titles = {**GENERATED_TITLES, **(titles or {})}
        self.ingredients = ingredients or {}
        self.calls: list[GenerationRequest] = []
        self._lock = threading.Lock()

    def generate(self, request):
        with self._lock:
            self.calls.append(request)
        if self.fail_all or request.technique in self.failing:
            raise TimeoutError("model timed out")
        return {
            "id": f"gen-{request.technique}",
            "title": self.titles.get(request.technique, f"Món {request.technique}"),
            "technique": request.technique,
            "ingredients": [{"name": n} for n in self.ingredients.get(request.technique, request.ingredients)],
            "is_approved": True,
        }


VOCABULARY = [
    MasterIngredient(id="001", name="cà rốt", category="rau củ", aliases=["carrot"]),
    MasterIngredient(id="002", name="thịt gà", category="thịt", aliases=["gà", "chicken"]),
    MasterIngredient(id="003", name="hành lá", category="rau thơm", aliases=["green onion"]),
    MasterIngredient(id="004", name="tôm", category="hải sản", aliases=["shrimp"]),
    MasterIngredient(id="005", name="cà chua", category="rau củ", aliases=["tomato"]),
    MasterIngredient(id="006", name="thịt heo", category="thịt", aliases=["heo", "pork"]),
]
