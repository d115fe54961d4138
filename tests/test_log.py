"""Logger naming under the package hierarchy."""

import logging

from log import ROOT, get_logger


def test_module_names_are_prefixed():
    assert get_logger("fast").name == "cliffmat.fast"
    assert get_logger("cliffmat.basis").name == "cliffmat.basis"
    assert get_logger(ROOT) is logging.getLogger("cliffmat")


def test_records_reach_the_application(caplog):
    with caplog.at_level(logging.DEBUG, logger=ROOT):
        get_logger("cliffmat.basis").debug("cached %s", "{1}")
    assert [rec.getMessage() for rec in caplog.records] == ["cached {1}"]
