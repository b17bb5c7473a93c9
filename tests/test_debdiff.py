# Copyright Red Hat
#
# tests/test_debdiff.py - debdiff package unit tests
#
# This file is part of the debdiff project.
#
# SPDX-License-Identifier: Apache-2.0
import unittest
import logging

import debdiff

log = logging.getLogger()


class DebdiffTestsSimple(unittest.TestCase):
    """Test debdiff module"""

    def setUp(self):
        log.debug("Preparing %s", self._testMethodName)
        self.addCleanup(debdiff.set_debug_mask, 0)

    def tearDown(self):
        log.debug("Tearing down (%s)", self._testMethodName)

    def test_set_debug_mask(self):
        debdiff.set_debug_mask(debdiff.DEBDIFF_DEBUG_ALL)
        self.assertEqual(debdiff.get_debug_mask(), debdiff.DEBDIFF_DEBUG_ALL)

    def test_set_debug_mask_bad_mask(self):
        with self.assertRaises(ValueError):
            debdiff.set_debug_mask(debdiff.DEBDIFF_DEBUG_ALL + 1)
        with self.assertRaises(ValueError):
            debdiff.set_debug_mask(-1)

    def test_SubsystemFilter(self):
        # Start with no subsystems enabled
        debdiff.set_debug_mask(0)
        sf = debdiff.SubsystemFilter("debdiff")
        self.assertEqual(sf.enabled_subsystems, set())
        # Enable a couple and ensure new filters initialise from cache
        debdiff.set_debug_mask(
            debdiff.DEBDIFF_DEBUG_INVENTORY | debdiff.DEBDIFF_DEBUG_ENGINE
        )
        sf2 = debdiff.SubsystemFilter("debdiff")
        self.assertIn(debdiff.DEBDIFF_SUBSYSTEM_INVENTORY, sf2.enabled_subsystems)
        self.assertIn(debdiff.DEBDIFF_SUBSYSTEM_ENGINE, sf2.enabled_subsystems)
        self.assertNotIn(debdiff.DEBDIFF_SUBSYSTEM_IGNORE, sf2.enabled_subsystems)

    def test_SubsystemFilter_filter(self):
        debdiff.set_debug_mask(debdiff.DEBDIFF_DEBUG_IGNORE)
        sf = debdiff.SubsystemFilter("debdiff")

        def record(level, subsystem=None):
            rec = logging.LogRecord("debdiff.x", level, __file__, 1, "msg", (), None)
            if subsystem:
                rec.subsystem = subsystem
            return rec

        self.assertTrue(sf.filter(record(logging.INFO, debdiff.DEBDIFF_SUBSYSTEM_ENGINE)))
        self.assertTrue(sf.filter(record(logging.DEBUG)))
        self.assertTrue(sf.filter(record(logging.DEBUG, debdiff.DEBDIFF_SUBSYSTEM_IGNORE)))
        self.assertFalse(sf.filter(record(logging.DEBUG, debdiff.DEBDIFF_SUBSYSTEM_ENGINE)))

    def test_exception_hierarchy(self):
        for exc in (
            debdiff.DebdiffIgnoreError,
            debdiff.DebdiffInventoryError,
            debdiff.DebdiffContentError,
            debdiff.DebdiffCalloutError,
            debdiff.DebdiffParseError,
            debdiff.DebdiffArgumentError,
        ):
            self.assertTrue(issubclass(exc, debdiff.DebdiffError))
