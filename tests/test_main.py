# pylint: disable=missing-module-docstring,missing-function-docstring,missing-class-docstring,protected-access
# pylint: disable=unused-argument,too-few-public-methods,no-member,use-implicit-booleaness-not-comparison,line-too-long
# pylint: disable=invalid-name,too-many-statements,too-many-instance-attributes,wrong-import-position,wrong-import-order
# pylint: disable=deprecated-module,too-many-locals,too-many-lines,attribute-defined-outside-init,unexpected-keyword-arg
# pylint: disable=duplicate-code
import asyncio

import pytest

import main


class DummyBridge:
    started = False

    async def start(self):
        DummyBridge.started = True


class FailingBridge:
    async def start(self):
        raise RuntimeError("port in use")


def test_main_starts_bridge(monkeypatch):
    monkeypatch.setattr(main, "RinnaiBridge", DummyBridge)
    asyncio.run(main.main())
    assert DummyBridge.started is True


def test_main_fatal_error_exits_1(monkeypatch):
    monkeypatch.setattr(main, "RinnaiBridge", FailingBridge)
    with pytest.raises(SystemExit) as exc:
        asyncio.run(main.main())
    assert exc.value.code == 1
