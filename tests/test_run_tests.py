"""
Test runner tests: area grouping and per-module tallies.
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import unittest


class TestAreas(unittest.TestCase):

    def test_every_test_module_has_an_area(self):
        import run_tests
        tests_dir = os.path.dirname(os.path.abspath(__file__))
        modules = [f[:-3] for f in os.listdir(tests_dir) if f.startswith("test_") and f.endswith(".py")]
        self.assertTrue(modules)
        for module in modules:
            self.assertNotEqual(run_tests.area_of(module), "other", module)

    def test_area_of(self):
        import run_tests
        self.assertEqual(run_tests.area_of("test_matcher"), "core")
        self.assertEqual(run_tests.area_of("test_mouth_metrics"), "metrics")
        self.assertEqual(run_tests.area_of("test_api_endpoints"), "service")
        self.assertEqual(run_tests.area_of("test_unknown"), "other")

    def test_area_order_puts_core_first(self):
        import run_tests
        modules = ["test_api_endpoints", "test_unknown", "test_types", "test_blow", "test_matcher"]
        self.assertEqual(sorted(modules, key=run_tests.area_order),
                         ["test_blow", "test_matcher", "test_types", "test_api_endpoints", "test_unknown"])


class TestModuleTally(unittest.TestCase):

    def test_result_counts_per_module(self):
        import io
        import run_tests

        class Sample(unittest.TestCase):
            def test_ok(self):
                pass

            def test_fail(self):
                self.fail("expected")

            @unittest.skip("not now")
            def test_skip(self):
                pass

        Sample.__module__ = "test_sample"
        tally = run_tests.ModuleTally()
        runner = unittest.TextTestRunner(stream=io.StringIO(),
                                         resultclass=run_tests.make_result_class(tally))
        result = runner.run(unittest.TestLoader().loadTestsFromTestCase(Sample))
        self.assertEqual(result.testsRun, 3)
        self.assertEqual(tally.counts["test_sample"], {"ok": 1, "fail": 1, "error": 0, "skip": 1})


if __name__ == "__main__":
    unittest.main()
