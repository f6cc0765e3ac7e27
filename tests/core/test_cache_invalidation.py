"""Cache invalidation matrix tests — event → staled view keys → recompute scope."""

from paradigm.core.cache_invalidation import (
    collect_invalidations, invalidation_keys, parse_invalidation_scope,
)
from paradigm.core.domain_types import (
    MorphologyAction, MorphologyEntity, RootInput, TemplateInput,
)
from paradigm.core.events import MorphologyEvent


def _root_event(root_id, action=MorphologyAction.UPDATED):
    return MorphologyEvent(
        MorphologyEntity.ROOT, action,
        RootInput(id=root_id, representation="k-t-b", gloss="write"),
    )


def _pattern_event(pattern_id, action=MorphologyAction.DELETED):
    return MorphologyEvent(
        MorphologyEntity.PATTERN, action,
        TemplateInput(id=pattern_id, skeleton="C-a-C-a-C", slot_count=3, name="Form I"),
    )


def _binding_event(binding_id, root_id, pattern_id):
    return MorphologyEvent(
        MorphologyEntity.BINDING, MorphologyAction.CREATED,
        {"id": binding_id, "root_id": root_id, "pattern_id": pattern_id,
         "generated_form": "katab"},
    )


# --- Matrix -------------------------------------------------------------------

def test_root_update_stales_root_centric_views():
    keys = invalidation_keys(_root_event(12))
    assert set(keys) == {
        "morphology:roots:list",
        "morphology:root:12",
        "morphology:bindings:list",
        "morphology:bindings:root:12",
        "morphology:paradigm:root:12",
    }
    assert len(keys) == len(set(keys))


def test_pattern_event_stales_pattern_centric_views():
    keys = invalidation_keys(_pattern_event(8))
    assert set(keys) == {
        "morphology:patterns:list",
        "morphology:pattern:8",
        "morphology:bindings:list",
        "morphology:bindings:pattern:8",
        "morphology:paradigm:pattern:8",
    }


def test_binding_event_combines_owner_views():
    keys = invalidation_keys(_binding_event(42, 4, 8))
    assert set(keys) == {
        "morphology:bindings:list",
        "morphology:binding:42",
        "morphology:bindings:root:4",
        "morphology:bindings:pattern:8",
        "morphology:paradigm:root:4",
        "morphology:paradigm:pattern:8",
        "morphology:root:4",
        "morphology:pattern:8",
    }


def test_entity_given_as_plain_string():
    event = MorphologyEvent("root", "created", {"id": 3})
    assert "morphology:root:3" in invalidation_keys(event)


def test_collect_dedupes_across_events():
    keys = collect_invalidations([_root_event(4), _binding_event(99, 4, 8)])
    assert set(keys) == {
        "morphology:roots:list",
        "morphology:bindings:list",
        "morphology:root:4",
        "morphology:bindings:root:4",
        "morphology:paradigm:root:4",
        "morphology:binding:99",
        "morphology:bindings:pattern:8",
        "morphology:paradigm:pattern:8",
        "morphology:pattern:8",
    }
    assert len(keys) == len(set(keys))


def test_collect_of_nothing_is_empty():
    assert collect_invalidations([]) == []


# --- Scope parsing ------------------------------------------------------------

def test_root_keys_scope_roots_only():
    scope = parse_invalidation_scope(invalidation_keys(_root_event(7)))
    assert scope.root_ids == [7]
    assert scope.template_ids == []


def test_pattern_keys_scope_templates_only():
    scope = parse_invalidation_scope(invalidation_keys(_pattern_event(5)))
    assert scope.root_ids == []
    assert scope.template_ids == [5]


def test_binding_keys_scope_exact_pair():
    scope = parse_invalidation_scope(invalidation_keys(_binding_event(1, 4, 8)))
    assert scope.root_ids == [4]
    assert scope.template_ids == [8]


def test_list_and_binding_keys_carry_no_scope():
    scope = parse_invalidation_scope([
        "morphology:roots:list", "morphology:bindings:list", "morphology:binding:42",
    ])
    assert scope.is_empty


def test_scope_ids_sorted_and_unique():
    keys = collect_invalidations([_root_event(9), _root_event(2), _root_event(9)])
    assert parse_invalidation_scope(keys).root_ids == [2, 9]
