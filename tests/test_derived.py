"""Tests for derived reducers and the DerivedAPI."""

import logging

import pytest

from dynreducer import DerivedListReducer, DerivedMapReducer, DynListReducer, DynMapReducer


def _desc(a, b):
    return b - a


def _by_name(a, b):
    return (a["name"] > b["name"]) - (a["name"] < b["name"])


class TestDerivedOfDerived:
    def test_cascade(self):
        dar = DynListReducer([1, 2, 3, 4])
        dr_a = dar.derived.create("test")
        dr_b = dar.derived.create("test2")
        dr2_a = dr_a.derived.create("test")
        dr2_b = dr_b.derived.create("test2")
        views = [dar, dr_a, dr_b, dr2_a, dr2_b]

        def check(*expected):
            for view, values in zip(views, expected):
                assert len(view) == len(list(view))
                assert list(view) == values

        check([1, 2, 3, 4], [1, 2, 3, 4], [1, 2, 3, 4], [1, 2, 3, 4], [1, 2, 3, 4])

        dr_a.filters.add(lambda v: v >= 2)
        check([1, 2, 3, 4], [2, 3, 4], [1, 2, 3, 4], [2, 3, 4], [1, 2, 3, 4])

        dar.sort.set(_desc)
        check([4, 3, 2, 1], [4, 3, 2], [4, 3, 2, 1], [4, 3, 2], [4, 3, 2, 1])

        dr_a.reversed = True
        check([4, 3, 2, 1], [2, 3, 4], [4, 3, 2, 1], [2, 3, 4], [4, 3, 2, 1])

        dr_a.filters.clear()
        check([4, 3, 2, 1], [1, 2, 3, 4], [4, 3, 2, 1], [1, 2, 3, 4], [4, 3, 2, 1])

        dar.reversed = True
        check([1, 2, 3, 4], [4, 3, 2, 1], [1, 2, 3, 4], [4, 3, 2, 1], [1, 2, 3, 4])

        dr_a.reversed = False
        dar.reversed = False
        check([4, 3, 2, 1], [4, 3, 2, 1], [4, 3, 2, 1], [4, 3, 2, 1], [4, 3, 2, 1])

        dar.sort.clear()
        check([1, 2, 3, 4], [1, 2, 3, 4], [1, 2, 3, 4], [1, 2, 3, 4], [1, 2, 3, 4])

    def test_parent_sort_reaches_filtered_child_once(self):
        parent = DynListReducer([1, 2, 3, 4])
        child = parent.derived.create("big")
        child.filters.add(lambda v: v >= 2)

        log = []
        child.subscribe(lambda r: log.append(list(r)))
        parent.sort.set(_desc)

        assert log == [[2, 3, 4], [4, 3, 2]]

    def test_child_sort_overrides_parent_order(self):
        parent = DynListReducer([3, 1, 2], sort=_desc)
        child = parent.derived.create({"name": "asc", "sort": lambda a, b: a - b})
        assert list(parent) == [3, 2, 1]
        assert list(child) == [1, 2, 3]

    def test_parent_destroy_notifies_child_once(self):
        parent = DynListReducer([1, 2, 3, 4])
        child = parent.derived.create({"name": "big", "filters": [lambda v: v > 1]})
        log = []
        child.subscribe(lambda r: log.append(list(r)))

        parent.destroy()

        assert log == [[2, 3, 4], []]
        assert child.destroyed

    def test_host_mutation_reaches_children(self):
        items = [1, 2]
        parent = DynListReducer(items)
        child = parent.derived.create({"name": "odd", "filters": [lambda v: v % 2]})
        items.extend([3, 5])
        parent.index.update(True)
        assert list(child) == [1, 3, 5]


class TestCreateUnderActiveParent:
    def test_list_parent_with_filter(self):
        parent = DynListReducer([1, 2, 3, 4], filters=[lambda v: v >= 2])
        child = parent.derived.create("plain")
        assert child.index.active
        assert list(child) == [2, 3, 4]
        assert len(child) == 3

    def test_list_parent_with_sort(self):
        parent = DynListReducer([1, 2, 3, 4])
        parent.sort.set(_desc)
        child = parent.derived.create("plain")
        assert list(child) == [4, 3, 2, 1]
        assert list(child.index) == [3, 2, 1, 0]

    def test_map_parent_with_filter(self):
        parent = DynMapReducer({"a": 1, "b": 2, "c": 3})
        parent.filters.add(lambda v: v > 1)
        child = parent.derived.create("plain")
        assert list(child) == [2, 3]
        assert list(child.index) == ["b", "c"]

    def test_map_parent_with_sort(self):
        parent = DynMapReducer({"a": 1, "b": 2})
        parent.sort.set(_desc)
        child = parent.derived.create("plain")
        assert list(child) == [2, 1]
        assert len(child) == 2

    def test_grandchild_under_filtered_child(self):
        parent = DynListReducer([1, 2, 3, 4])
        child = parent.derived.create({"name": "odd", "filters": [lambda v: v % 2]})
        grandchild = child.derived.create("plain")
        assert list(grandchild) == [1, 3]

    def test_first_notification_sees_inherited_view(self):
        parent = DynListReducer([3, 1, 2], sort=_desc)
        child = parent.derived.create("plain")
        log = []
        child.subscribe(lambda r: log.append(list(r)))
        assert log == [[3, 2, 1]]


# --- Custom derived reducers ---


def _inventory():
    return [
        {"type": "equipment", "name": "backpack"},
        {"type": "consumable", "name": "potion"},
        {"type": "class", "name": "sorcerer", "level": 1},
        {"type": "spell", "name": "bane", "level": 1},
        {"type": "spell", "name": "silence", "level": 2},
        {"type": "consumable", "name": "ham"},
        {"type": "spell", "name": "shield", "level": 1},
        {"type": "equipment", "name": "icepick"},
        {"type": "class", "name": "cleric", "level": 4},
        {"type": "spell", "name": "spirit guardians", "level": 3},
    ]


class ClassDerivedReducer(DerivedListReducer):
    """Class entries sorted by name, with a running total level."""

    total_level = 0

    def initialize(self, options):
        assert options == {"extra": "data", "foo": "bar"}

        self.filters.add(lambda item: item["type"] == "class")
        self.sort.set(_by_name)
        self.subscribe(lambda _: self._calculate())

    def destroy(self):
        super().destroy()
        self.total_level = 0

    def _calculate(self):
        self.total_level = sum(item["level"] for item in self)


class SpellsDerivedReducer(DerivedListReducer):
    """Spells sorted by level, with one child view per level."""

    def initialize(self, options):
        self.filters.add(lambda item: item["type"] == "spell")
        self.sort.set(lambda a, b: a["level"] - b["level"])

        self.one = self.derived.create("one")
        self.two = self.derived.create("two")
        self.three = self.derived.create("three")

        self.one.filters.add(lambda item: item["level"] == 1)
        self.two.filters.add(lambda item: item["level"] == 2)
        self.three.filters.add(lambda item: item["level"] == 3)


class CharacterSheet(DynListReducer):
    def __init__(self, data=None):
        super().__init__(data)
        self.classes = self.derived.create({"ctor": ClassDerivedReducer, "extra": "data", "foo": "bar"})
        self.spells = self.derived.create(SpellsDerivedReducer)


class TestCustom:
    def test_custom_reducers(self):
        data = _inventory()
        sheet = CharacterSheet(data)

        assert list(sheet) == data
        assert [item["name"] for item in sheet.classes] == ["cleric", "sorcerer"]
        assert sheet.classes.total_level == 5

        assert [item["name"] for item in sheet.spells] == [
            "bane", "shield", "silence", "spirit guardians",
        ]
        assert [item["name"] for item in sheet.spells.one] == ["bane", "shield"]
        assert [item["name"] for item in sheet.spells.two] == ["silence"]
        assert [item["name"] for item in sheet.spells.three] == ["spirit guardians"]

        sheet.spells.destroy()

        assert list(sheet.spells) == []
        assert list(sheet.spells.one) == []
        assert list(sheet.spells.two) == []
        assert list(sheet.spells.three) == []
        assert list(sheet) == data

        sheet.destroy()

        assert list(sheet) == []
        assert list(sheet.classes) == []
        assert sheet.classes.total_level == 0

    def test_class_name_is_default_name(self):
        sheet = CharacterSheet(_inventory())
        assert sheet.derived.get("ClassDerivedReducer") is sheet.classes
        assert sheet.derived.get("SpellsDerivedReducer") is sheet.spells

    def test_derived_total_tracks_host(self):
        data = _inventory()
        sheet = CharacterSheet(data)
        data.append({"type": "class", "name": "bard", "level": 2})
        sheet.index.update(True)
        assert sheet.classes.total_level == 7
        assert [item["name"] for item in sheet.classes] == ["bard", "cleric", "sorcerer"]


class TestDerivedAPI:
    def test_get(self):
        reducer = DynListReducer([1, 2])
        child = reducer.derived.create("child")
        assert reducer.derived.get("child") is child
        assert reducer.derived.get("missing") is None
        assert len(reducer.derived) == 1

    def test_delete(self):
        reducer = DynListReducer([1, 2])
        child = reducer.derived.create("child")
        assert reducer.derived.delete("child") is True
        assert child.destroyed
        assert reducer.derived.get("child") is None
        assert reducer.derived.delete("child") is False

    def test_clear(self):
        reducer = DynListReducer([1, 2])
        a = reducer.derived.create("a")
        b = reducer.derived.create("b")
        reducer.derived.clear()
        assert len(reducer.derived) == 0
        assert a.destroyed and b.destroyed
        assert not reducer.destroyed
        assert reducer.derived.create("c") is not None

    def test_name_collision_replaces(self, caplog):
        caplog.set_level(logging.DEBUG, logger="dynreducer.derived")
        reducer = DynListReducer([1, 2])
        first = reducer.derived.create("same")
        second = reducer.derived.create("same")

        assert first.destroyed
        assert not second.destroyed
        assert reducer.derived.get("same") is second
        assert len(reducer.derived) == 1
        assert "replacing derived reducer 'same'" in caplog.text

    def test_destroyed_manager(self):
        reducer = DynListReducer([1, 2])
        reducer.derived.destroy()
        reducer.derived.destroy()

        with pytest.raises(RuntimeError, match="DerivedAPI.create error: this instance has been destroyed"):
            reducer.derived.create("child")
        with pytest.raises(RuntimeError, match="DerivedAPI.get error"):
            reducer.derived.get("child")
        with pytest.raises(RuntimeError, match="DerivedAPI.delete error"):
            reducer.derived.delete("child")

    def test_destroy_notifies_empty(self):
        reducer = DynListReducer([1, 2])
        child = reducer.derived.create("child")
        log = []
        child.subscribe(lambda r: log.append(list(r)))
        child.destroy()
        assert log == [[1, 2], []]
        assert child.destroyed
        assert list(reducer) == [1, 2]
        assert reducer.data == [1, 2]

    def test_map_derived(self):
        reducer = DynMapReducer({"a": 1, "b": 2, "c": 3})
        child = reducer.derived.create({"name": "big", "filters": [lambda v: v > 1]})
        assert isinstance(child, DerivedMapReducer)
        assert list(child) == [2, 3]

        reducer.sort.set(_desc)
        assert list(child) == [3, 2]
        assert list(child.index) == ["c", "b"]


class TestErrors:
    def test_options_wrong_type(self):
        with pytest.raises(TypeError, match="'options' does not conform to allowed parameters"):
            DynListReducer([]).derived.create(5)

    def test_ctor_not_derived_reducer(self):
        with pytest.raises(TypeError, match="'ctor' is not a 'DerivedListReducer'"):
            DynListReducer([]).derived.create({"ctor": int})

    def test_map_reducer_class_on_list(self):
        with pytest.raises(TypeError, match="'options' does not conform"):
            DynListReducer([]).derived.create(DerivedMapReducer)

    def test_name_not_string(self):
        with pytest.raises(TypeError, match="'name' is not a string"):
            DynListReducer([]).derived.create({"name": 5})

    def test_filters_option_not_iterable(self):
        reducer = DynListReducer([])
        with pytest.raises(TypeError, match="'filters' attribute is not iterable"):
            reducer.derived.create({"name": "bad", "filters": 5})
        assert reducer.derived.get("bad") is None

    def test_sort_option_not_function(self):
        with pytest.raises(TypeError, match="'sort' attribute is not a function or object"):
            DynListReducer([]).derived.create({"name": "bad", "sort": 5})
