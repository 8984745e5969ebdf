from typing import Any, Dict, Mapping, Type

from data.models import TrialConfig, TrialConfigError
from experiment.plugins.base import TrialPlugin
from experiment.plugins.d3_two_stage import D3TwoStagePlugin
from experiment.plugins.explicit_choice import ExplicitChoicePlugin
from experiment.plugins.fixation import FixationPlugin
from experiment.plugins.instructions import InstructionsPlugin
from experiment.plugins.mars_trial import MarsTrialPlugin
from experiment.plugins.two_stage import TwoStagePlugin

PLUGINS: Dict[str, Type[TrialPlugin]] = {
    plugin.name: plugin
    for plugin in (
        TwoStagePlugin,
        D3TwoStagePlugin,
        ExplicitChoicePlugin,
        FixationPlugin,
        MarsTrialPlugin,
        InstructionsPlugin,
    )
}


def get_plugin(trial_type: str) -> Type[TrialPlugin]:
    try:
        return PLUGINS[trial_type]
    except KeyError:
        raise TrialConfigError(f"Unknown trial type: {trial_type!r}") from None


def define_trial(params: Mapping[str, Any]) -> TrialConfig:
    trial_type = params.get("type")
    if trial_type is None:
        raise TrialConfigError("trial definition has no 'type'")
    return get_plugin(trial_type).define(params)


__all__ = [
    "PLUGINS",
    "TrialPlugin",
    "get_plugin",
    "define_trial",
    "TwoStagePlugin",
    "D3TwoStagePlugin",
    "ExplicitChoicePlugin",
    "FixationPlugin",
    "MarsTrialPlugin",
    "InstructionsPlugin",
]
