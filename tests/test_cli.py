import json

import pytest

from yield_lottery.cli import main
from yield_lottery.escrow import user_account


@pytest.fixture
def run(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    state = str(tmp_path / "state.json")

    def invoke(*argv):
        with pytest.raises(SystemExit) as exc:
            main(["--state", state, "--admin", "boss", *argv])
        out, err = capsys.readouterr()
        return exc.value.code, out, err

    return invoke


def test_full_round_through_the_command_line(run, tmp_path):
    assert run("fund", "A", "100")[0] == 0
    assert run("fund", "B", "300")[0] == 0
    code, out, _ = run("create")
    assert code == 0
    assert "Created lottery 0" in out

    assert run("bet", "A", "0", "100")[0] == 0
    assert run("bet", "B", "0", "300")[0] == 0

    audit = tmp_path / "audit.json"
    code, out, _ = run("draw", "A", "0", "--ticket", "150", "--out", str(audit))
    assert code == 0
    assert user_account("B")[0].address in out

    code, out, _ = run("show", "0")
    shown = json.loads(out)
    assert shown[0]["is_open"] is False
    assert shown[0]["payout_amount"] == 400

    code, out, _ = run("verify", "--audit", str(audit))
    assert code == 0
    assert "AUDIT VERIFIED" in out

    code, _, err = run("draw", "A", "0", "--ticket", "1")
    assert code == 1
    assert "lottery_closed" in err

    code, out, _ = run("claim-yield", "0")
    assert code == 0

    code, _, err = run("claim-yield", "0", "--by", "A")
    assert code == 1
    assert "unauthorized" in err


def test_yield_accrues_between_invocations(run):
    run("fund", "A", "1000")
    run("create")
    run("bet", "A", "0", "1000")
    assert run("accrue", "--bps", "200")[0] == 0
    run("draw", "A", "0", "--ticket", "0")

    assert run("claim-yield", "0")[0] == 0

    code, out, _ = run("show", "0")
    shown = json.loads(out)[0]
    assert shown["yield_earned"] == 20
    assert shown["yield_claimed"] is True
    assert shown["escrow_balance"] == 0

    code, out, _ = run("balance", "boss")
    assert code == 0
    assert user_account("boss")[0].address in out


def test_errors_do_not_touch_state(run):
    run("fund", "A", "5")
    run("create")

    code, _, err = run("bet", "A", "0", "6")
    assert code == 1
    assert "insufficient_funds" in err

    code, out, _ = run("show")
    assert json.loads(out)[0]["participants"] == []

    code, _, err = run("bet", "A", "3", "1")
    assert code == 1
    assert "not_found" in err
