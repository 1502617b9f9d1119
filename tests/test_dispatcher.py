import unittest

from src.common.errors import PatchError, PatchErrorKind
from src.common.operations import OperationResult
from src.common.primitives import UNDEFINED, deep_clone, deep_equal
from src.extensions.registry import ExtendedOperationRegistry
from src.patcher.dispatcher import apply_operation, get_value_by_pointer
from src.pointer.resolver import set_child


class StandardOperationTests(unittest.TestCase):
    def test_add_nested_key_mutates_in_place(self) -> None:
        doc = {"a": {"b": 1}}
        result = apply_operation(doc, {"op": "add", "path": "/a/c", "value": 2})
        self.assertIs(result.new_document, doc)
        self.assertEqual(doc, {"a": {"b": 1, "c": 2}})

    def test_add_without_mutation_leaves_original(self) -> None:
        doc = {"a": {"b": 1}}
        result = apply_operation(doc, {"op": "add", "path": "/a/c", "value": 2}, mutate=False)
        self.assertEqual(doc, {"a": {"b": 1}})
        self.assertEqual(result.new_document, {"a": {"b": 1, "c": 2}})
        self.assertIsNot(result.new_document["a"], doc["a"])

    def test_add_appends_and_inserts_in_lists(self) -> None:
        doc = ["x", "y"]
        result = apply_operation(doc, {"op": "add", "path": "/-", "value": "z"})
        self.assertEqual(doc, ["x", "y", "z"])
        self.assertEqual(result.index, 2)
        apply_operation(doc, {"op": "add", "path": "/1", "value": "w"})
        self.assertEqual(doc, ["x", "w", "y", "z"])

    def test_remove_shifts_list_siblings(self) -> None:
        doc = {"items": ["a", "b", "c"]}
        result = apply_operation(doc, {"op": "remove", "path": "/items/0"})
        self.assertEqual(result.removed, "a")
        self.assertEqual(doc["items"], ["b", "c"])

    def test_remove_and_replace_report_removed(self) -> None:
        doc = {"a": 1, "b": {"c": [1]}}
        removed = apply_operation(doc, {"op": "remove", "path": "/a"}).removed
        self.assertEqual(removed, 1)
        self.assertNotIn("a", doc)
        result = apply_operation(doc, {"op": "replace", "path": "/b/c", "value": "new"})
        self.assertEqual(result.removed, [1])
        self.assertEqual(doc, {"b": {"c": "new"}})

    def test_remove_null_value_is_reported(self) -> None:
        doc = {"a": None}
        result = apply_operation(doc, {"op": "remove", "path": "/a"})
        self.assertTrue(result.has_removed)
        self.assertIsNone(result.removed)

    def test_move_relocates_value(self) -> None:
        doc = {"a": {"x": [1]}, "b": {}}
        result = apply_operation(doc, {"op": "move", "from": "/a/x", "path": "/b/y"})
        self.assertEqual(doc, {"a": {}, "b": {"y": [1]}})
        self.assertIs(result.removed, UNDEFINED)

    def test_move_reports_overwritten_destination(self) -> None:
        doc = {"a": 1, "b": {"old": True}}
        result = apply_operation(doc, {"op": "move", "from": "/a", "path": "/b"})
        self.assertEqual(doc, {"b": 1})
        self.assertEqual(result.removed, {"old": True})

    def test_move_within_list(self) -> None:
        doc = [1, 2, 3, 4]
        apply_operation(doc, {"op": "move", "from": "/0", "path": "/3"})
        self.assertEqual(doc, [2, 3, 4, 1])

    def test_copy_is_independent_of_source(self) -> None:
        doc = {"a": {"x": [1]}}
        apply_operation(doc, {"op": "copy", "from": "/a", "path": "/b"})
        self.assertEqual(doc["b"], {"x": [1]})
        doc["b"]["x"].append(2)
        self.assertEqual(doc["a"], {"x": [1]})

    def test_test_operation(self) -> None:
        doc = {"a": {"b": 2, "c": 3}, "l": [1, 2]}
        result = apply_operation(doc, {"op": "test", "path": "/a", "value": {"c": 3, "b": 2}})
        self.assertTrue(result.test)
        with self.assertRaises(PatchError) as ctx:
            apply_operation(doc, {"op": "test", "path": "/l", "value": [2, 1]}, index=4)
        self.assertEqual(ctx.exception.kind, PatchErrorKind.TEST_OPERATION_FAILED)
        self.assertEqual(ctx.exception.index, 4)

    def test_test_without_value_only_matches_absent_member(self) -> None:
        doc = {"a": None}
        with self.assertRaises(PatchError) as ctx:
            apply_operation(doc, {"op": "test", "path": "/a"})
        self.assertEqual(ctx.exception.kind, PatchErrorKind.TEST_OPERATION_FAILED)
        self.assertTrue(apply_operation(doc, {"op": "test", "path": "/missing"}).test)

    def test_move_from_missing_member(self) -> None:
        doc = {"a": 1}
        apply_operation(doc, {"op": "move", "from": "/missing", "path": "/b"})
        self.assertEqual(doc, {"a": 1})
        items = {"l": [1]}
        apply_operation(items, {"op": "move", "from": "/missing", "path": "/l/0"})
        self.assertEqual(items, {"l": [None, 1]})

    def test_move_and_copy_require_from(self) -> None:
        for operation in (
            {"op": "copy", "path": "/b"},
            {"op": "move", "path": "/b"},
            {"op": "copy", "path": "/b", "from": 3},
        ):
            with self.subTest(operation=operation):
                doc = {"a": 1}
                with self.assertRaises(PatchError) as ctx:
                    apply_operation(doc, operation, index=2)
                self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_FROM_REQUIRED)
                self.assertEqual(ctx.exception.index, 2)
                self.assertEqual(doc, {"a": 1})

    def test_escaped_components(self) -> None:
        doc = {"a/b": {"~": 1}}
        apply_operation(doc, {"op": "replace", "path": "/a~1b/~0", "value": 2})
        self.assertEqual(doc, {"a/b": {"~": 2}})

    def test_get_value_by_pointer(self) -> None:
        doc = {"a": [{"b": "c"}]}
        self.assertEqual(get_value_by_pointer(doc, "/a/0/b"), "c")
        self.assertIs(get_value_by_pointer(doc, ""), doc)
        self.assertIs(get_value_by_pointer(doc, "/a/3"), UNDEFINED)


class RootOperationTests(unittest.TestCase):
    def test_add_and_replace_substitute_document(self) -> None:
        doc = {"a": 1}
        self.assertEqual(apply_operation(doc, {"op": "add", "path": "", "value": [1]}).new_document, [1])
        result = apply_operation(doc, {"op": "replace", "path": "", "value": "s"})
        self.assertEqual(result.new_document, "s")
        self.assertIs(result.removed, doc)

    def test_remove_yields_null(self) -> None:
        doc = {"a": 1}
        result = apply_operation(doc, {"op": "remove", "path": ""})
        self.assertIsNone(result.new_document)
        self.assertIs(result.removed, doc)

    def test_move_and_copy_from_child(self) -> None:
        doc = {"a": {"b": [1]}}
        moved = apply_operation(doc, {"op": "move", "from": "/a", "path": ""})
        self.assertEqual(moved.new_document, {"b": [1]})
        self.assertIs(moved.removed, doc)
        copied = apply_operation(doc, {"op": "copy", "from": "/a/b", "path": ""})
        self.assertEqual(copied.new_document, [1])
        self.assertIsNot(copied.new_document, doc["a"]["b"])
        self.assertIs(copied.removed, UNDEFINED)

    def test_root_test(self) -> None:
        self.assertTrue(apply_operation([1, 2], {"op": "test", "path": "", "value": [1, 2]}).test)
        with self.assertRaises(PatchError) as ctx:
            apply_operation([1, 2], {"op": "test", "path": "", "value": [2, 1]})
        self.assertEqual(ctx.exception.kind, PatchErrorKind.TEST_OPERATION_FAILED)

    def test_root_move_and_copy_require_from(self) -> None:
        for op in ("move", "copy"):
            with self.subTest(op=op):
                with self.assertRaises(PatchError) as ctx:
                    apply_operation({"a": 1}, {"op": op, "path": ""})
                self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_FROM_REQUIRED)

    def test_root_test_without_value(self) -> None:
        with self.assertRaises(PatchError) as ctx:
            apply_operation(None, {"op": "test", "path": ""})
        self.assertEqual(ctx.exception.kind, PatchErrorKind.TEST_OPERATION_FAILED)

    def test_unknown_root_op(self) -> None:
        doc = {"a": 1}
        self.assertIs(apply_operation(doc, {"op": "bogus", "path": ""}).new_document, doc)
        with self.assertRaises(PatchError) as ctx:
            apply_operation(doc, {"op": "bogus", "path": ""}, validate=True)
        self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_OP_INVALID)


class GuardAndValidationTests(unittest.TestCase):
    def test_prototype_pollution_is_banned(self) -> None:
        doc = {}
        with self.assertRaises(TypeError):
            apply_operation(doc, {"op": "add", "path": "/__proto__/polluted", "value": True})
        self.assertEqual(doc, {})
        doc = {"constructor": {}}
        with self.assertRaises(TypeError):
            apply_operation(doc, {"op": "add", "path": "/constructor/prototype", "value": 1})
        self.assertEqual(doc, {"constructor": {}})

    def test_prototype_guard_can_be_disabled(self) -> None:
        doc = {}
        apply_operation(doc, {"op": "add", "path": "/__proto__", "value": 1}, ban_prototype_modifications=False)
        self.assertEqual(doc, {"__proto__": 1})

    def test_missing_intermediate(self) -> None:
        with self.assertRaises(PatchError) as ctx:
            apply_operation({}, {"op": "add", "path": "/a/b/c", "value": 1})
        self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_PATH_UNRESOLVABLE)
        with self.assertRaises(PatchError) as ctx:
            apply_operation({}, {"op": "add", "path": "/a/b/c", "value": 1}, validate=True)
        self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_PATH_CANNOT_ADD)

    def test_scalar_intermediate(self) -> None:
        with self.assertRaises(PatchError) as ctx:
            apply_operation({"a": 5}, {"op": "add", "path": "/a/b", "value": 1})
        self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_PATH_UNRESOLVABLE)

    def test_list_index_out_of_bounds(self) -> None:
        with self.assertRaises(PatchError) as ctx:
            apply_operation([1, 2], {"op": "add", "path": "/5", "value": 3}, validate=True)
        self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_VALUE_OUT_OF_BOUNDS)
        doc = [1, 2]
        apply_operation(doc, {"op": "add", "path": "/5", "value": 3})
        self.assertEqual(doc, [1, 2, 3])

    def test_illegal_list_index(self) -> None:
        for path in ("/foo", "/01", "/-1"):
            for validate in (False, True):
                with self.assertRaises(PatchError) as ctx:
                    apply_operation([1, 2], {"op": "replace", "path": path, "value": 0}, validate=validate)
                self.assertIn(
                    ctx.exception.kind,
                    (PatchErrorKind.OPERATION_PATH_ILLEGAL_ARRAY_INDEX, PatchErrorKind.OPERATION_PATH_UNRESOLVABLE),
                )
        with self.assertRaises(PatchError) as ctx:
            apply_operation([1, 2], {"op": "add", "path": "/foo", "value": 0})
        self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_PATH_ILLEGAL_ARRAY_INDEX)

    def test_replace_missing_path_with_validation(self) -> None:
        with self.assertRaises(PatchError) as ctx:
            apply_operation({}, {"op": "replace", "path": "/missing", "value": 1}, validate=True)
        self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_PATH_UNRESOLVABLE)

    def test_unknown_nested_op(self) -> None:
        with self.assertRaises(PatchError) as ctx:
            apply_operation({"a": 1}, {"op": "merge", "path": "/a"})
        self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_OP_INVALID)

    def test_operation_must_be_mapping(self) -> None:
        with self.assertRaises(PatchError) as ctx:
            apply_operation({}, ["add", "/a", 1])
        self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_NOT_AN_OBJECT)

    def test_callable_validator_sees_existing_fragment(self) -> None:
        calls = []

        def recorder(operation, index, document, fragment):
            calls.append((index, fragment))

        doc = {"a": {}}
        apply_operation(doc, {"op": "add", "path": "/a/b", "value": 1}, validate=recorder, index=3)
        self.assertEqual(calls, [(3, "/a/b"), (3, "/a")])
        self.assertEqual(doc, {"a": {"b": 1}})


def _increment(operation, container, key, document):
    container[key] = container[key] + (operation.get("args") or [1])[0]
    return OperationResult(document)


def _assign(operation, container, key, document):
    set_child(container, key, operation["args"][0])
    return OperationResult(document)


def _delete(operation, container, key, document):
    removed = container.pop(key)
    return OperationResult(document, removed=removed)


def _scribble(operation, container, key, document):
    container[key] = "scribbled"
    return None


def _accept(operation, index, document, fragment):
    return None


def _config(handler):
    return {"arr": handler, "obj": handler, "validator": _accept}


class ExtendedOperationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.registry = ExtendedOperationRegistry()
        self.registry.register("x-inc", _config(_increment))
        self.registry.register("x-set", _config(_assign))
        self.registry.register("x-del", _config(_delete))
        self.registry.register("x-scribble", _config(_scribble))

    def _apply(self, doc, operation, **kwargs):
        return apply_operation(doc, operation, registry=self.registry, **kwargs)

    def test_map_handler_grafts_into_document(self) -> None:
        doc = {"count": 1, "other": {"keep": True}}
        result = self._apply(doc, {"op": "x", "xid": "x-inc", "path": "/count", "args": [2]})
        self.assertIs(result.new_document, doc)
        self.assertEqual(doc, {"count": 3, "other": {"keep": True}})

    def test_without_mutation_returns_handler_result(self) -> None:
        doc = {"count": 1}
        result = self._apply(doc, {"op": "x", "xid": "x-inc", "path": "/count"}, mutate=False)
        self.assertEqual(doc, {"count": 1})
        self.assertEqual(result.new_document, {"count": 2})

    def test_last_element_sentinel(self) -> None:
        doc = {"nums": [1, 2]}
        self._apply(doc, {"op": "x", "xid": "x-inc", "path": "/nums/--"})
        self.assertEqual(doc, {"nums": [1, 3]})

    def test_append_sentinel(self) -> None:
        doc = {"nums": [1]}
        self._apply(doc, {"op": "x", "xid": "x-set", "path": "/nums/-", "args": [9]})
        self.assertEqual(doc, {"nums": [1, 9]})

    def test_none_result_leaves_document_untouched(self) -> None:
        doc = {"a": {"b": 1}}
        before = deep_clone(doc)
        result = self._apply(doc, {"op": "x", "xid": "x-scribble", "path": "/a/b"})
        self.assertIs(result.new_document, doc)
        self.assertTrue(deep_equal(doc, before))

    def test_prune_removes_only_target_key(self) -> None:
        doc = {"a": {"b": 1, "c": 2}}
        result = self._apply(doc, {"op": "x", "xid": "x-del", "path": "/a/b"})
        self.assertEqual(doc, {"a": {"c": 2}})
        self.assertEqual(result.removed, 1)
        items = {"l": [1, 2, 3]}
        self._apply(items, {"op": "x", "xid": "x-del", "path": "/l/1"})
        self.assertEqual(items, {"l": [1, 3]})

    def test_top_level_prune(self) -> None:
        doc = {"a": 1, "b": 2}
        self._apply(doc, {"op": "x", "xid": "x-del", "path": "/a"})
        self.assertEqual(doc, {"b": 2})

    def test_resolve_creates_missing_maps(self) -> None:
        doc = {"keep": 1}
        self._apply(doc, {"op": "x", "xid": "x-set", "path": "/a/b/c", "args": ["v"], "resolve": True})
        self.assertEqual(doc, {"keep": 1, "a": {"b": {"c": "v"}}})

    def test_resolve_creates_minimal_lists_under_list_root(self) -> None:
        doc = []
        self._apply(doc, {"op": "x", "xid": "x-set", "path": "/0/2", "args": ["v"], "resolve": True})
        self.assertEqual(doc, [[None, None, "v"]])

    def test_missing_path_without_resolve(self) -> None:
        with self.assertRaises(PatchError) as ctx:
            self._apply({}, {"op": "x", "xid": "x-set", "path": "/a/b", "args": [1]})
        self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_PATH_UNRESOLVABLE)

    def test_removal_while_resolving_is_ambiguous(self) -> None:
        doc = {"a": 1}
        with self.assertRaises(PatchError) as ctx:
            self._apply(doc, {"op": "x", "xid": "x-del", "path": "/a", "resolve": True})
        self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_X_AMBIGUOUS_REMOVAL)
        self.assertEqual(doc, {"a": 1})

    def test_index_bounds_without_resolve(self) -> None:
        with self.assertRaises(PatchError) as ctx:
            self._apply({"l": [1]}, {"op": "x", "xid": "x-inc", "path": "/l/5"})
        self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_VALUE_OUT_OF_BOUNDS)
        with self.assertRaises(PatchError) as ctx:
            self._apply({"l": []}, {"op": "x", "xid": "x-inc", "path": "/l/--"})
        self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_VALUE_OUT_OF_BOUNDS)
        with self.assertRaises(PatchError) as ctx:
            self._apply({"l": [1]}, {"op": "x", "xid": "x-inc", "path": "/l/"})
        self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_PATH_ILLEGAL_ARRAY_INDEX)

    def test_unregistered_xid(self) -> None:
        for path in ("", "/a"):
            with self.assertRaises(PatchError) as ctx:
                self._apply({"a": 1}, {"op": "x", "xid": "x-missing", "path": path})
            self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_X_OP_INVALID)

    def test_root_without_resolve_uses_value(self) -> None:
        result = self._apply({"a": 1}, {"op": "x", "xid": "x-set", "path": "", "value": {"b": 2}})
        self.assertEqual(result.new_document, {"b": 2})

    def test_root_with_resolve_runs_map_handler_on_clone(self) -> None:
        def wrap(operation, container, key, document):
            return OperationResult({"wrapped": container, "key": key})

        self.registry.register("x-wrap", _config(wrap))
        doc = {"a": 1}
        result = self._apply(doc, {"op": "x", "xid": "x-wrap", "path": "", "resolve": True})
        self.assertEqual(result.new_document, {"wrapped": {"a": 1}, "key": ""})
        self.assertIsNot(result.new_document["wrapped"], doc)

    def test_handler_must_return_result(self) -> None:
        self.registry.register("x-bad", _config(lambda *_args: {"new_document": {}}))
        with self.assertRaises(PatchError) as ctx:
            self._apply({"a": 1}, {"op": "x", "xid": "x-bad", "path": "/a"})
        self.assertEqual(ctx.exception.kind, PatchErrorKind.OPERATION_X_OPERATOR_EXCEPTION)

    def test_handler_errors_propagate(self) -> None:
        def explode(*_args):
            raise ValueError("boom")

        self.registry.register("x-explode", _config(explode))
        doc = {"a": 1}
        with self.assertRaises(ValueError):
            self._apply(doc, {"op": "x", "xid": "x-explode", "path": "/a"})
        self.assertEqual(doc, {"a": 1})


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
