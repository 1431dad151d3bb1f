"""Tests for the meal, ingredient and analysis services."""

import json
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from larder.ai import AIClient
from larder.contracts import EntityKind, ProgressAction, Scope, WorkflowState
from larder.persistence import InMemoryRecordStore, JsonStateStore
from larder.services import DataAnalysisService, IngredientService, MealService


class DummyAgent:
    """Answer prompts with ``respond(prompt)``; raise when it returns an exception."""

    def __init__(self, respond):
        self.respond = respond
        self.prompts = []

    async def run(self, prompt: str):
        self.prompts.append(prompt)
        output = self.respond(prompt)
        if isinstance(output, Exception):
            raise output
        return SimpleNamespace(output=output)


def make_services(tmp_path, respond):
    records = InMemoryRecordStore()
    state_store = JsonStateStore(tmp_path / "data")
    agent = DummyAgent(respond)
    ai = AIClient(agent=agent, pacing_delay_s=0)
    meals = MealService(records, ai, state_store, variation_delay_s=0)
    ingredients = IngredientService(records, ai, state_store, variation_delay_s=0)
    return records, state_store, agent, meals, ingredients


@pytest.mark.asyncio
async def test_add_titles_records_per_item_failures(tmp_path):
    def respond(prompt):
        if "Broken" in prompt:
            return ""
        return "Hearty Stew"

    records, _, agent, meals, _ = make_services(tmp_path, respond)
    for i in range(4):
        await records.insert(EntityKind.MEALS, {"id": f"m{i}", "description": f"Meal {i}"})
    await records.insert(EntityKind.MEALS, {"id": "bad", "description": "Broken"})
    await records.insert(EntityKind.MEALS, {"id": "done", "title": "Already Titled"})

    result = await meals.add_titles()

    assert (result.success, result.failed) == (4, 1)
    failed = [r for r in result.results if not r.success]
    assert failed[0].id == "bad"
    assert "No response" in failed[0].error
    assert len(agent.prompts) == 5

    stored = await records.get(EntityKind.MEALS, "m0")
    assert stored["title"] == "Hearty Stew"
    assert "updatedAt" in stored
    assert "title" not in await records.get(EntityKind.MEALS, "bad")


@pytest.mark.asyncio
async def test_add_titles_with_explicit_ids(tmp_path):
    records, _, _, _, ingredients = make_services(tmp_path, lambda p: "kale")
    await records.insert(EntityKind.INGREDIENTS, {"id": "a"})
    await records.insert(EntityKind.INGREDIENTS, {"id": "b", "title": "spinach"})
    await records.insert(EntityKind.INGREDIENTS, {"id": "c"})

    result = await ingredients.add_titles(ids=["a", "b", "missing"])

    assert [(r.id, r.success) for r in result.results] == [("missing", False), ("a", True)]
    assert (await records.get(EntityKind.INGREDIENTS, "b"))["title"] == "spinach"
    assert "title" not in await records.get(EntityKind.INGREDIENTS, "c")


@pytest.mark.asyncio
async def test_check_without_titles_uses_touched_window_for_ingredients(tmp_path):
    records, _, _, meals, ingredients = make_services(tmp_path, lambda p: "x")
    now = datetime.now(timezone.utc)
    old = now - timedelta(days=10)
    for kind in EntityKind:
        await records.insert(kind, {"id": "touched", "createdAt": old, "updatedAt": now})
        await records.insert(kind, {"id": "old", "createdAt": old})

    meal_check = await meals.check_without_titles(Scope.LAST_7_DAYS)
    ingredient_check = await ingredients.check_without_titles(Scope.LAST_7_DAYS)

    assert meal_check.total == 0
    assert ingredient_check.ids_without_titles == ["touched"]


@pytest.mark.asyncio
async def test_enhance_fills_only_missing_fields(tmp_path):
    proposal = {
        "description": "Replacement description",
        "type": "protein",
        "cookingTime": "20 minutes",
        "instructions": ["Chop", "Simmer"],
        "ingredients": {"lentils": "200g"},
        "suggestions": {"improvements": ["Add lemon"]},
    }
    records, _, _, meals, _ = make_services(tmp_path, lambda p: json.dumps(proposal))
    await records.insert(
        EntityKind.MEALS,
        {"id": "m1", "title": "Dal", "description": "Original", "ingredients": {"dal": "1 cup"}},
    )

    result = await meals.enhance()

    assert result.success == 1
    assert result.updated == 1
    stored = await records.get(EntityKind.MEALS, "m1")
    assert stored["description"] == "Original"
    assert stored["ingredients"] == {"dal": "1 cup"}
    assert stored["type"] == "protein"
    assert stored["cookingTime"] == "20 minutes"
    assert stored["instructions"] == ["Chop", "Simmer"]
    assert stored["suggestions"]["improvements"] == ["Add lemon"]
    assert result.results[0].details["fields"] == sorted(
        ["type", "cookingTime", "instructions", "suggestions"]
    )


@pytest.mark.asyncio
async def test_ingredient_enhancement_drops_invalid_type(tmp_path):
    proposal = {"type": "meat", "calories": 250, "isAntiInflammatory": False}
    records, _, _, _, ingredients = make_services(tmp_path, lambda p: json.dumps(proposal))
    await records.insert(EntityKind.INGREDIENTS, {"id": "i1", "title": "beef"})

    await ingredients.enhance()

    stored = await records.get(EntityKind.INGREDIENTS, "i1")
    assert "type" not in stored
    assert stored["calories"] == 250
    assert stored["isAntiInflammatory"] is False


@pytest.mark.asyncio
async def test_enhance_failure_is_recorded(tmp_path):
    records, _, _, meals, _ = make_services(tmp_path, lambda p: "not json")
    await records.insert(EntityKind.MEALS, {"id": "m1"})

    result = await meals.enhance()

    assert (result.success, result.failed, result.updated) == (0, 1, 0)


@pytest.mark.asyncio
async def test_transform_duplicates_avoids_existing_titles(tmp_path):
    answers = iter(
        [
            json.dumps({"title": "Tomato Soup"}),
            json.dumps({"title": "Roasted Tomato Soup", "cookingMethod": "roasting"}),
        ]
    )
    records, state_store, agent, meals, _ = make_services(tmp_path, lambda p: next(answers))
    await records.insert(EntityKind.MEALS, {"id": "a", "title": "Tomato Soup"})
    await records.insert(EntityKind.MEALS, {"id": "b", "title": "tomato soup!"})
    await records.insert(EntityKind.MEALS, {"id": "c", "title": "Tomato  Soup"})
    state = WorkflowState()
    state.pending_transformations.meals = ["b", "c"]
    state_store.save_state(state)

    result = await meals.transform_duplicates()

    assert (result.success, result.failed) == (1, 1)
    assert result.results[0].id == "b"
    assert "already exists" in result.results[0].error
    assert (await records.get(EntityKind.MEALS, "a"))["title"] == "Tomato Soup"
    stored = await records.get(EntityKind.MEALS, "c")
    assert stored["title"] == "Roasted Tomato Soup"
    assert stored["cookingMethod"] == "roasting"
    assert "Tomato Soup" in agent.prompts[0]

    state = state_store.load_state()
    assert state.pending_transformations.meals == []
    assert state.processing_queue.meals == ["b"]
    assert state.completed.meals == ["c"]


@pytest.mark.asyncio
async def test_update_types_scopes_and_tracks_backlog(tmp_path):
    def respond(prompt):
        if "mystery" in prompt:
            return "unknown"
        return "herb"

    records, state_store, _, _, ingredients = make_services(tmp_path, respond)
    now = datetime.now(timezone.utc)
    await records.insert(EntityKind.INGREDIENTS, {"id": "basil", "title": "basil", "createdAt": now})
    await records.insert(
        EntityKind.INGREDIENTS, {"id": "mystery", "title": "mystery", "type": "x", "createdAt": now}
    )
    await records.insert(
        EntityKind.INGREDIENTS, {"id": "ok", "title": "oats", "type": "grain", "createdAt": now}
    )
    await records.insert(
        EntityKind.INGREDIENTS,
        {"id": "stale", "title": "sage", "createdAt": now - timedelta(days=3)},
    )
    state = WorkflowState()
    state.pending_transformations.ingredients = ["basil", "mystery", "stale"]
    state_store.save_state(state)

    needing = await ingredients.get_needing_type_updates()
    assert [r.id for r in needing] == ["basil", "mystery"]

    result = await ingredients.update_types()

    assert (result.success, result.failed) == (1, 1)
    assert result.results[0].details == {"oldType": None, "newType": "herb"}
    assert (await records.get(EntityKind.INGREDIENTS, "basil"))["type"] == "herb"
    assert (await records.get(EntityKind.INGREDIENTS, "mystery"))["type"] == "x"

    state = state_store.load_state()
    assert state.pending_transformations.ingredients == ["stale"]
    assert state.processing_queue.ingredients == ["mystery"]
    assert state.completed.ingredients == ["basil"]


@pytest.mark.asyncio
async def test_update_type_for_missing_record(tmp_path):
    _, _, agent, _, ingredients = make_services(tmp_path, lambda p: "herb")

    result = await ingredients.update_type("nope")

    assert not result.success
    assert agent.prompts == []


@pytest.mark.asyncio
async def test_comprehensive_analysis_persists_snapshot_and_backlog(tmp_path):
    records = InMemoryRecordStore()
    state_store = JsonStateStore(tmp_path / "data")
    service = DataAnalysisService(records, state_store)
    await records.insert(EntityKind.INGREDIENTS, {"id": "1", "title": "Banana", "type": "fruit"})
    await records.insert(EntityKind.INGREDIENTS, {"id": "2", "title": "  banana!! ", "type": "fruit"})
    await records.insert(EntityKind.INGREDIENTS, {"id": "3", "title": "", "type": "meat"})
    await records.insert(EntityKind.MEALS, {"id": "m1"})

    assert service.get_workflow_state().last_analysis is None

    result = await service.perform_comprehensive_analysis(Scope.ALL)

    assert result.ingredients.total == 3
    assert result.ingredients.without_titles == 1
    assert result.ingredients.duplicates == 1
    assert result.ingredients.needs_type_update == ["3"]
    assert result.meals.without_titles == 1
    assert result.summary.critical_issues == 2
    assert result.summary.total_issues == 3
    assert result.summary.recommendations[:2] == [
        "Add titles to 1 meals",
        "Add titles to 1 ingredients",
    ]

    assert service.get_last_analysis() == result
    state = service.get_workflow_state()
    assert state.last_analysis == result
    assert state.pending_transformations.ingredients == ["3"]
    assert state.pending_transformations.meals == []

    state = service.update_workflow_progress(EntityKind.INGREDIENTS, ProgressAction.START, ["3"])
    assert state.processing_queue.ingredients == ["3"]


@pytest.mark.asyncio
async def test_reanalysis_keeps_processing_ids_out_of_pending(tmp_path):
    records, state_store, _, _, ingredients = make_services(tmp_path, lambda p: "unknown")
    analysis = DataAnalysisService(records, state_store)
    await records.insert(EntityKind.INGREDIENTS, {"id": "i1", "title": "venison", "type": "meat"})

    await analysis.perform_comprehensive_analysis(Scope.ALL)
    result = await ingredients.update_types(ids=["i1"])
    assert result.failed == 1

    await analysis.perform_comprehensive_analysis(Scope.ALL)

    state = state_store.load_state()
    assert state.pending_transformations.ingredients == []
    assert state.processing_queue.ingredients == ["i1"]
    assert state.last_analysis.ingredients.needs_type_update == ["i1"]


@pytest.mark.asyncio
async def test_malformed_documents_are_skipped_and_reported(tmp_path):
    records, state_store, _, meals, ingredients = make_services(tmp_path, lambda p: "Fresh Title")
    analysis = DataAnalysisService(records, state_store)
    await records.insert(EntityKind.MEALS, {"id": "m1", "description": "Soup"})
    await records.insert(EntityKind.MEALS, {"id": "m2", "instructions": "Boil it"})
    await records.insert(EntityKind.INGREDIENTS, {"id": "i1", "categories": {"diet": "vegan"}})

    result = await analysis.perform_comprehensive_analysis(Scope.ALL)

    assert result.meals.total == 1
    assert result.meals.malformed == ["m2"]
    assert result.ingredients.malformed == ["i1"]
    assert result.summary.recommendations[:2] == [
        "Fix the structure of 1 malformed meals",
        "Fix the structure of 1 malformed ingredients",
    ]

    titles = await meals.add_titles()
    assert [(r.id, r.success) for r in titles.results] == [("m1", True)]

    titles = await ingredients.add_titles(ids=["i1"])
    assert not titles.results[0].success
    assert "validation error" in titles.results[0].error


class FlakyRecordStore(InMemoryRecordStore):
    async def get(self, kind, record_id):
        if record_id == "boom":
            raise ConnectionError("store unavailable")
        return await super().get(kind, record_id)


@pytest.mark.asyncio
async def test_store_read_errors_become_item_failures(tmp_path):
    records = FlakyRecordStore()
    state_store = JsonStateStore(tmp_path / "data")
    ai = AIClient(agent=DummyAgent(lambda p: "spice"), pacing_delay_s=0)
    ingredients = IngredientService(records, ai, state_store, variation_delay_s=0)
    await records.insert(EntityKind.INGREDIENTS, {"id": "ok", "title": "cumin"})

    types = await ingredients.update_types(ids=["boom", "ok"])
    assert [(r.id, r.success) for r in types.results] == [("boom", False), ("ok", True)]
    assert types.results[0].error == "store unavailable"

    titles = await ingredients.add_titles(ids=["boom"])
    assert (titles.success, titles.failed) == (0, 1)


@pytest.mark.asyncio
async def test_meal_enhancement_drops_invalid_type_and_method(tmp_path):
    proposal = {"type": "dessert", "cookingMethod": "microwave", "cookingTime": "5 minutes"}
    records, _, _, meals, _ = make_services(tmp_path, lambda p: json.dumps(proposal))
    await records.insert(EntityKind.MEALS, {"id": "m1", "title": "Mug Cake"})

    result = await meals.enhance()

    stored = await records.get(EntityKind.MEALS, "m1")
    assert "type" not in stored
    assert "cookingMethod" not in stored
    assert stored["cookingTime"] == "5 minutes"
    assert result.results[0].details["fields"] == ["cookingTime"]


@pytest.mark.asyncio
async def test_fix_structure_repairs_ingredients_without_ai(tmp_path):
    records, _, agent, _, ingredients = make_services(tmp_path, lambda p: "unused")
    await records.insert(
        EntityKind.INGREDIENTS,
        {
            "id": "i1",
            "title": "kale",
            "techniques": "steam",
            "features": {"fiber": "3g", "season": "Winter", "rainbow": "teal"},
            "storageOptions": {"fridge": "1 week"},
        },
    )
    await records.insert(
        EntityKind.INGREDIENTS,
        {
            "id": "i2",
            "title": "cucumber",
            "techniques": ["raw"],
            "features": {
                "fiber": "0.5g",
                "g_i": "15",
                "season": "summer",
                "water": "95%",
                "rainbow": "green",
            },
            "storageOptions": {"countertop": "1 day", "fridge": "1 week", "freezer": "no"},
        },
    )

    result = await ingredients.fix_structure()

    assert (result.success, result.updated) == (2, 1)
    assert result.results[1].details == {"fields": []}
    assert agent.prompts == []
    stored = await records.get(EntityKind.INGREDIENTS, "i1")
    assert stored["techniques"] == ["steam"]
    assert stored["features"] == {
        "fiber": "3g",
        "g_i": "0",
        "season": "winter",
        "water": "0",
        "rainbow": "white",
    }
    assert stored["storageOptions"] == {
        "countertop": "not recommended",
        "fridge": "1 week",
        "freezer": "not recommended",
    }
    assert "updatedAt" in stored


@pytest.mark.asyncio
async def test_fix_structure_repairs_malformed_meal_with_ai(tmp_path):
    proposal = {
        "cookingMethod": "grilling",
        "description": "Smoky chicken",
        "instructions": ["Ignored"],
        "serveQty": 2,
    }
    records, state_store, agent, meals, _ = make_services(tmp_path, lambda p: json.dumps(proposal))
    await records.insert(
        EntityKind.MEALS,
        {
            "id": "m1",
            "title": "Grilled Chicken Bowl",
            "instructions": "Season\nGrill",
            "cookingMethod": "bbq",
            "ingredients": {"1": "2", "rice": "1"},
        },
    )

    result = await meals.fix_structure()

    assert result.success == 1
    assert result.results[0].details["fields"] == [
        "cookingMethod",
        "description",
        "ingredients",
        "instructions",
        "serveQty",
        "suggestions",
    ]
    assert "Season" in agent.prompts[0]
    stored = await records.get(EntityKind.MEALS, "m1")
    assert stored["instructions"] == ["Season", "Grill"]
    assert stored["ingredients"] == {"rice": "1 cup", "chicken": "2 piece"}
    assert stored["cookingMethod"] == "grilling"
    assert stored["description"] == "Smoky chicken"
    assert stored["serveQty"] == 2
    assert stored["suggestions"] == {"improvements": [], "alternatives": [], "additions": []}

    analysis = await DataAnalysisService(records, state_store).analyze_meals()
    assert analysis.malformed == []


@pytest.mark.asyncio
async def test_fix_structure_keeps_rule_fixes_when_ai_fails(tmp_path):
    records, _, agent, meals, _ = make_services(tmp_path, lambda p: "no json here")
    await records.insert(EntityKind.MEALS, {"id": "m1", "title": "Tomato Soup", "cookingMethod": "pot"})

    result = await meals.fix_structure()

    assert (result.success, result.failed) == (1, 0)
    assert len(agent.prompts) == 1
    stored = await records.get(EntityKind.MEALS, "m1")
    assert stored["cookingMethod"] == "soup"
    assert stored["suggestions"]["additions"] == []


@pytest.mark.asyncio
async def test_generate_new_ingredients(tmp_path):
    answers = iter(
        [
            json.dumps({"title": "Tofu", "type": "protein"}),
            json.dumps(
                {"title": "tempeh", "type": "grain", "calories": 192, "features": {"fiber": "9g"}}
            ),
            json.dumps({"title": "mango", "type": "fruit", "alt": ["papaya"]}),
        ]
    )
    records, _, agent, _, ingredients = make_services(tmp_path, lambda p: next(answers))
    await records.insert(EntityKind.INGREDIENTS, {"id": "t", "title": "tofu"})

    result = await ingredients.generate_new({"protein": 2, "vegetable": 0, "fruit": 1})

    assert (result.success, result.failed) == (2, 1)
    assert result.results[0].id == "protein-1"
    assert "already exists" in result.results[0].error
    assert result.results[1].details == {"title": "tempeh", "type": "protein"}
    assert "tempeh" in agent.prompts[2]

    tempeh = await records.get(EntityKind.INGREDIENTS, result.results[1].id)
    assert tempeh["type"] == "protein"
    assert tempeh["calories"] == 192
    assert tempeh["features"]["fiber"] == "9g"
    assert tempeh["features"]["season"] == "year-round"
    assert tempeh["storageOptions"]["fridge"] == "recommended"
    assert tempeh["isSelected"] is False
    assert tempeh["mediaPaths"] == []
    assert "createdAt" in tempeh
    mango = await records.get(EntityKind.INGREDIENTS, result.results[2].id)
    assert mango["alt"] == ["papaya"]
    assert len(await records.list_all(EntityKind.INGREDIENTS)) == 3


@pytest.mark.asyncio
async def test_generate_new_rejects_unknown_types(tmp_path):
    _, _, agent, _, ingredients = make_services(tmp_path, lambda p: "{}")

    with pytest.raises(ValueError, match="meat"):
        await ingredients.generate_new({"meat": 1})
    assert agent.prompts == []
