import os
import random
import sys
import unittest
import uuid

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
import module_service as ms
from db import ModuleRepository
from models import ExerciseInstance, Module, ModuleType
from module_service import ModuleService
from resolver_service import ExerciseResolver


def make_module(count: int = 4) -> Module:
    module = Module(name="Upper A")
    for i in range(count):
        module = ms.add_exercise(module, ExerciseInstance(name=f"Ex {i}"))
    return module


def names(module: Module):
    return [e.name for e in module.exercises]


class OrderTestCase(unittest.TestCase):
    def assertContiguous(self, module: Module) -> None:
        self.assertEqual([e.order for e in module.exercises], list(range(len(module.exercises))))

    def test_add_remove_move_keep_order_contiguous(self) -> None:
        rng = random.Random(7)
        module = make_module(3)
        self.assertContiguous(module)
        for step in range(60):
            op = rng.choice(["add", "remove", "move", "insert"])
            n = len(module.exercises)
            if op == "add":
                module = ms.add_exercise(module, ExerciseInstance(name=f"New {step}"))
            elif op == "insert":
                module = ms.add_exercise(
                    module, ExerciseInstance(name=f"Ins {step}"), rng.randint(0, n)
                )
            elif op == "remove":
                module = ms.remove_exercise(module, rng.randint(-1, n))
            else:
                module = ms.move_exercise(module, rng.randint(0, n), rng.randint(0, n))
            self.assertContiguous(module)

    def test_move(self) -> None:
        module = ms.move_exercise(make_module(), 0, 2)
        self.assertEqual(names(module), ["Ex 1", "Ex 2", "Ex 0", "Ex 3"])

    def test_out_of_range_is_noop(self) -> None:
        module = make_module()
        self.assertIs(ms.remove_exercise(module, 9), module)
        self.assertIs(ms.move_exercise(module, 0, 9), module)

    def test_operations_do_not_mutate_input(self) -> None:
        module = make_module()
        ms.remove_exercise(module, 0)
        self.assertEqual(len(module.exercises), 4)

    def test_update_exercise(self) -> None:
        module = make_module()
        target = module.exercises[1].model_copy(update={"notes": "pause reps"})
        updated = ms.update_exercise(module, target)
        self.assertEqual(updated.exercises[1].notes, "pause reps")
        self.assertIs(ms.update_exercise(module, ExerciseInstance(name="x")), module)


class SupersetTestCase(unittest.TestCase):
    def test_create_and_break_restore_nil(self) -> None:
        module = make_module()
        ids = [module.exercises[0].id, module.exercises[2].id]
        linked = ms.create_superset(module, ids)
        group_id = linked.exercises[0].superset_group_id
        self.assertIsNotNone(group_id)
        self.assertEqual(linked.exercises[2].superset_group_id, group_id)
        self.assertIsNone(linked.exercises[1].superset_group_id)

        broken = ms.break_superset_group(linked, group_id)
        self.assertTrue(all(e.superset_group_id is None for e in broken.exercises))

    def test_grouping_follows_first_appearance(self) -> None:
        module = make_module()
        linked = ms.create_superset(module, [module.exercises[0].id, module.exercises[2].id])
        groups = ms.resolved_exercises_grouped(linked, ExerciseResolver())
        self.assertEqual(
            [[e.name for e in g] for g in groups], [["Ex 0", "Ex 2"], ["Ex 1"], ["Ex 3"]]
        )
        self.assertEqual(ms.superset_position(linked, module.exercises[2].id), (2, 2))
        self.assertIsNone(ms.superset_position(linked, module.exercises[1].id))

    def test_single_id_is_noop(self) -> None:
        module = make_module()
        self.assertIs(ms.create_superset(module, [module.exercises[0].id]), module)
        self.assertIs(
            ms.create_superset(module, [module.exercises[0].id, module.exercises[0].id]), module
        )
        self.assertIs(ms.create_superset(module, [module.exercises[0].id, uuid.uuid4()]), module)
        self.assertTrue(all(e.superset_group_id is None for e in module.exercises))

    def test_regrouping_replaces_membership(self) -> None:
        module = make_module()
        ex = module.exercises
        first = ms.create_superset(module, [ex[0].id, ex[1].id])
        second = ms.create_superset(first, [ex[1].id, ex[2].id])
        # Ex 0 would be alone, so its id is cleared.
        self.assertIsNone(second.exercises[0].superset_group_id)
        self.assertEqual(
            second.exercises[1].superset_group_id, second.exercises[2].superset_group_id
        )
        self.assertEqual(ms.orphaned_superset_ids(second.exercises), set())

    def test_removing_member_dissolves_pair(self) -> None:
        module = make_module()
        linked = ms.create_superset(module, [module.exercises[0].id, module.exercises[1].id])
        self.assertTrue(all(e.superset_group_id is None for e in ms.remove_exercise(linked, 0).exercises))
        single = ms.break_superset(linked, module.exercises[1].id)
        self.assertTrue(all(e.superset_group_id is None for e in single.exercises))

    def test_orphaned_ids(self) -> None:
        lonely = uuid.uuid4()
        exercises = [ExerciseInstance(name="a", superset_group_id=lonely), ExerciseInstance(name="b")]
        self.assertEqual(ms.orphaned_superset_ids(exercises), {lonely})


class ModuleServiceTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.db_path = "test_modules.db"
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        self.service = ModuleService(ModuleRepository(self.db_path))

    def tearDown(self) -> None:
        if os.path.exists(self.db_path):
            os.remove(self.db_path)

    def test_create_save_delete(self) -> None:
        module = self.service.create(" Warmup ", ModuleType.WARMUP)
        module = ms.add_exercise(module, ExerciseInstance(name="Jumping Jacks"))
        self.service.save(module)
        loaded = self.service.load_modules()
        self.assertEqual(loaded, [module])
        self.assertEqual(loaded[0].name, "Warmup")
        self.service.delete(module)
        self.service.delete(module)
        self.assertEqual(self.service.load_modules(), [])


if __name__ == "__main__":
    unittest.main()
