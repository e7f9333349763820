"""Tests for navigation settings and logging."""

import logging
import tempfile
import unittest
from pathlib import Path

import numpy as np

from pathnav import InvalidTopology, NavMesh, log
from pathnav.settings import SCALAR, NavConfig, as_scalar_array


class NavConfigTest(unittest.TestCase):
    """Тесты для NavConfig."""

    def test_defaults(self):
        config = NavConfig()

        self.assertEqual(config.plane_tolerance, 0.5)
        self.assertFalse(config.diagonal)
        self.assertFalse(config.corner_cutting)
        self.assertIsNone(config.max_workers)

    def test_dict_round_trip(self):
        config = NavConfig(plane_tolerance=0.25, diagonal=True, max_workers=3)
        self.assertEqual(NavConfig.from_dict(config.to_dict()), config)

    def test_from_partial_dict(self):
        config = NavConfig.from_dict({"corner_cutting": True})

        self.assertTrue(config.corner_cutting)
        self.assertEqual(config.plane_tolerance, 0.5)

    def test_save_load(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "nested" / "nav.json"
            NavConfig(plane_tolerance=2.0).save(path)

            self.assertEqual(NavConfig.load(path).plane_tolerance, 2.0)

    def test_load_missing(self):
        """Отсутствующий файл — настройки по умолчанию."""
        self.assertEqual(NavConfig.load("/nonexistent/pathnav/nav.json"), NavConfig())


class ScalarTest(unittest.TestCase):
    """Тесты для типа хранения координат."""

    def test_scalar_is_float(self):
        self.assertIn(SCALAR, (np.dtype(np.float32), np.dtype(np.float64)))

    def test_as_scalar_array(self):
        self.assertEqual(as_scalar_array([1, 2, 3]).dtype, SCALAR)

    def test_mesh_storage(self):
        mesh = NavMesh([(0, 0), (1, 0), (0, 1)], [(0, 1, 2)])
        self.assertEqual(mesh.vertices.dtype, SCALAR)


class LogCallbackTest(unittest.TestCase):
    """Тесты для перенаправления лога в callback."""

    def setUp(self):
        self.records = []
        log.set_callback(lambda level, message: self.records.append((level, message)))

    def tearDown(self):
        log.set_callback(None)
        log.set_level(logging.NOTSET)

    def test_invalid_mesh_warns(self):
        """Ошибка построения сопровождается предупреждением в логе."""
        with self.assertRaises(InvalidTopology):
            NavMesh([(0, 0), (1, 0), (0, 1)], [(0, 1, 5)])

        self.assertTrue(any(level == log.Level.WARN and "out of bounds" in message
                            for level, message in self.records))

    def test_debug_filtered_by_level(self):
        log.set_level(log.Level.INFO)
        log.debug("hidden")
        log.info("shown")

        self.assertEqual([m for _, m in self.records], ["shown"])

    def test_exception_with_context(self):
        try:
            raise ValueError("boom")
        except ValueError as e:
            log.error(e, "while testing")

        level, message = self.records[-1]
        self.assertEqual(level, log.Level.ERROR)
        self.assertIn("while testing: ValueError: boom", message)

    def test_warn_with_exception(self):
        log.warn(KeyError("kind"), "while loading")

        level, message = self.records[-1]
        self.assertEqual(level, log.Level.WARN)
        self.assertIn("while loading: KeyError", message)

    def test_callback_removed(self):
        log.set_callback(None)
        log.warn("nobody listens")
        self.assertEqual(self.records, [])


if __name__ == "__main__":
    unittest.main()
