from __future__ import annotations

from dataclasses import dataclass

from sklearn.dummy import DummyRegressor
from sklearn.linear_model import ElasticNet
from sklearn.svm import SVR

from forecast_trainer.domain.training import (
    FeatureSelector,
    Registry,
    TrainableWorkflow,
)

from .feature_selection import select_by_target_correlation
from .workflows import SklearnWorkflow


@dataclass(frozen=True)
class TrainingRegistries:
    workflows: Registry[TrainableWorkflow]
    feature_selectors: Registry[FeatureSelector]


def build_glmnet(recipe: str) -> TrainableWorkflow:
    return SklearnWorkflow(
        model_name="glmnet",
        recipe=recipe,
        estimator_cls=ElasticNet,
        base_params={"alpha": 0.1, "l1_ratio": 0.5, "max_iter": 5000},
    )


def build_svm_rbf(recipe: str) -> TrainableWorkflow:
    return SklearnWorkflow(
        model_name="svm-rbf",
        recipe=recipe,
        estimator_cls=SVR,
        base_params={"kernel": "rbf"},
    )


def build_svm_poly(recipe: str) -> TrainableWorkflow:
    return SklearnWorkflow(
        model_name="svm-poly",
        recipe=recipe,
        estimator_cls=SVR,
        base_params={"kernel": "poly", "degree": 2},
    )


def build_meanf(recipe: str) -> TrainableWorkflow:
    return SklearnWorkflow(
        model_name="meanf",
        recipe=recipe,
        estimator_cls=DummyRegressor,
        base_params={"strategy": "mean"},
    )


def build_target_corr() -> FeatureSelector:
    return select_by_target_correlation


def default_registries() -> TrainingRegistries:
    workflows: Registry[TrainableWorkflow] = Registry(kind="workflow")
    workflows.register("glmnet")(build_glmnet)
    workflows.register("svm-rbf")(build_svm_rbf)
    workflows.register("svm-poly")(build_svm_poly)
    workflows.register("meanf")(build_meanf)

    selectors: Registry[FeatureSelector] = Registry(kind="feature selector")
    selectors.register("target_corr")(build_target_corr)
    return TrainingRegistries(workflows=workflows, feature_selectors=selectors)
