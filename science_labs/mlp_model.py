#!/usr/bin/env python3
"""
Feed-forward regression network shared between training, prediction and the
model store.
"""

from typing import Sequence

import torch
from torch import nn

from .config import ExperimentSpec, OutputActivation


class RegressionMLP(nn.Module):
    def __init__(
        self,
        input_size: int,
        hidden_units: Sequence[int] = (32, 32),
        output_dim: int = 1,
        output_activation: OutputActivation = OutputActivation.LINEAR,
    ):
        super().__init__()
        layers = []
        width = input_size
        for units in hidden_units:
            layers.append(nn.Linear(width, units))
            layers.append(nn.ReLU())
            width = units
        layers.append(nn.Linear(width, output_dim))
        if OutputActivation(output_activation) is OutputActivation.SIGMOID:
            layers.append(nn.Sigmoid())
        self.net = nn.Sequential(*layers)
        self.input_size = input_size
        self.hidden_units = tuple(hidden_units)
        self.output_dim = output_dim
        self.output_activation = OutputActivation(output_activation)

    def forward(self, x):
        return self.net(x)

    def config(self) -> dict:
        return {
            "input_size": self.input_size,
            "hidden_units": list(self.hidden_units),
            "output_dim": self.output_dim,
            "output_activation": self.output_activation.value,
        }


def build_mlp_model(config: dict) -> RegressionMLP:
    return RegressionMLP(
        input_size=config["input_size"],
        hidden_units=config.get("hidden_units", (32, 32)),
        output_dim=config.get("output_dim", 1),
        output_activation=config.get("output_activation", OutputActivation.LINEAR.value),
    )


def build_for_experiment(experiment: ExperimentSpec) -> RegressionMLP:
    return RegressionMLP(
        input_size=experiment.input_size,
        hidden_units=experiment.hidden_units,
        output_dim=experiment.output_dim,
        output_activation=experiment.output_activation,
    )

