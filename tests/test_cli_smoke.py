import asyncio
import json

from cart_chain import cli
from cart_chain.app import process
from cart_chain.impl.gift_steps import StepSpec


def _write_cart(tmp_path, total_price: int, items: list | None = None) -> str:
    payload = {
        "token": "smoke",
        "total_price": total_price,
        "item_count": 1 if items is None else len(items),
        "items": [{"id": 1, "variant_id": 1000, "price": "150.00"}] if items is None else items,
        "attributes": {},
    }
    path = tmp_path / "cart.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return str(path)


def _write_config(tmp_path, steps: list[str]) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(
        "\n".join(
            [
                "logging:",
                "  level: WARNING",
                f"  log_dir: '{(tmp_path / 'logs').as_posix()}'",
                "chain:",
                f"  steps: [{', '.join(steps)}]",
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    return str(path)


def test_cli_list_steps_smoke(capsys):
    rc = cli.main(["list-steps"])
    assert rc == 0

    out = capsys.readouterr().out
    assert "add_gift:" in out
    assert "update_attributes:" in out


def test_cli_run_prints_processed_cart(tmp_path, capsys):
    cart_path = _write_cart(tmp_path, 15000)
    config_path = _write_config(tmp_path, ["add_gift", "update_attributes"])

    rc = cli.main(["run", cart_path, "--config", config_path])

    assert rc == 0
    result = json.loads(capsys.readouterr().out)
    assert result["item_count"] == 2
    assert result["attributes"] == {"gift_variant_id": "9999"}
    log_files = list((tmp_path / "logs").glob("*_oplog.log"))
    assert len(log_files) == 1
    assert "Config loaded: explicit" in log_files[0].read_text(encoding="utf-8")


def test_cli_run_writes_output_file(tmp_path, capsys):
    cart_path = _write_cart(tmp_path, 10000)
    config_path = _write_config(tmp_path, ["add_gift", "update_attributes"])
    output_path = tmp_path / "out.json"

    rc = cli.main(["run", cart_path, "--config", config_path, "--output", str(output_path)])

    assert rc == 0
    assert capsys.readouterr().out == ""
    result = json.loads(output_path.read_text(encoding="utf-8"))
    assert result["item_count"] == 1
    assert result["attributes"] == {}


def test_cli_run_vetoed_chain_exits_2(tmp_path, capsys):
    cart_path = _write_cart(tmp_path, 15000, items=[])
    config_path = _write_config(tmp_path, ["require_items", "add_gift"])

    rc = cli.main(["run", cart_path, "--config", config_path])

    assert rc == 2
    assert "Chain stopped: cart is empty" in capsys.readouterr().err


def test_cli_run_unknown_step_exits_1(tmp_path, capsys):
    cart_path = _write_cart(tmp_path, 15000)
    config_path = _write_config(tmp_path, ["add_gfit"])

    rc = cli.main(["run", cart_path, "--config", config_path])

    assert rc == 1
    assert "Unknown step: add_gfit" in capsys.readouterr().err


def test_cli_run_timeout_exits_1(tmp_path, monkeypatch, capsys):
    def make_slow_step(_gift):
        async def slow(cart):
            await asyncio.sleep(5)
            return cart

        return slow

    monkeypatch.setitem(process.STEP_CATALOG, "slow", StepSpec("slow", make_slow_step, "Sleep."))
    cart_path = _write_cart(tmp_path, 15000)
    config_path = _write_config(tmp_path, ["slow"])

    rc = cli.main(["run", cart_path, "--config", config_path, "--timeout", "0.05"])

    assert rc == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Chain timed out after 0.05s" in captured.err
