"""Minimal ABI fragments for the goal stake, automation and receipts contracts."""

from typing import Any


def _fn(
    name: str,
    inputs: list[dict[str, Any]],
    outputs: list[dict[str, Any]] | None = None,
    view: bool = False,
) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": inputs,
        "outputs": outputs or [],
        "stateMutability": "view" if view else "nonpayable",
    }


def _arg(name: str, type_: str, components: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    arg: dict[str, Any] = {"name": name, "type": type_}
    if components is not None:
        arg["components"] = components
    return arg


_GOAL_COMPONENTS = [
    _arg("id", "uint256"),
    _arg("name", "string"),
    _arg("targetMiles", "uint256"),
    _arg("minStake", "uint256"),
    _arg("maxStake", "uint256"),
    _arg("startTime", "uint256"),
    _arg("entryDeadline", "uint256"),
    _arg("deadline", "uint256"),
    _arg("active", "bool"),
    _arg("settled", "bool"),
    _arg("totalStaked", "uint256"),
    _arg("participantCount", "uint256"),
]

_PARTICIPANT_COMPONENTS = [
    _arg("user", "address"),
    _arg("stake", "uint256"),
    _arg("actualValue", "uint256"),
    _arg("verified", "bool"),
    _arg("succeeded", "bool"),
    _arg("claimed", "bool"),
]

_RECEIPT_INPUT_COMPONENTS = [
    _arg("goalId", "uint256"),
    _arg("participant", "address"),
    _arg("goalType", "uint8"),
    _arg("target", "uint256"),
    _arg("actual", "uint256"),
    _arg("stakeAmount", "uint256"),
    _arg("payout", "uint256"),
    _arg("succeeded", "bool"),
    _arg("startTime", "uint256"),
    _arg("endTime", "uint256"),
    _arg("goalName", "string"),
]

GOAL_STAKE_ABI = [
    _fn("goalCount", [], [_arg("", "uint256")], view=True),
    _fn(
        "getGoal",
        [_arg("goalId", "uint256")],
        [_arg("", "tuple", _GOAL_COMPONENTS)],
        view=True,
    ),
    _fn("goalTypes", [_arg("goalId", "uint256")], [_arg("", "uint8")], view=True),
    _fn(
        "getGoalParticipants",
        [_arg("goalId", "uint256")],
        [_arg("", "address[]")],
        view=True,
    ),
    _fn(
        "getParticipant",
        [_arg("goalId", "uint256"), _arg("user", "address")],
        [_arg("", "tuple", _PARTICIPANT_COMPONENTS)],
        view=True,
    ),
]

AUTOMATION_ABI = [
    _fn(
        "manualVerify",
        [
            _arg("goalId", "uint256"),
            _arg("user", "address"),
            _arg("actualValue", "uint256"),
        ],
    ),
    _fn("manualSettle", [_arg("goalId", "uint256")]),
]

RECEIPTS_ABI = [
    _fn(
        "batchMintReceipts",
        [_arg("inputs", "tuple[]", _RECEIPT_INPUT_COMPONENTS)],
    ),
    _fn(
        "receiptForGoal",
        [_arg("goalId", "uint256"), _arg("participant", "address")],
        [_arg("", "uint256")],
        view=True,
    ),
]
