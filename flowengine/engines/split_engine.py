# flowengine/engines/split_engine.py
"""
Split engines: full dataset -> named train/test partitions.

Every engine returns ``{split_id: {"train": DataFrame, "test": DataFrame}}``.
"""
from __future__ import annotations

from typing import Dict

import pandas as pd
from sklearn.model_selection import KFold, StratifiedKFold, train_test_split

Splits = Dict[str, Dict[str, pd.DataFrame]]


def engine_split_random(data: pd.DataFrame, split_ratio: float, seed: int) -> Splits:
    train, test = train_test_split(data, train_size=split_ratio, random_state=seed)
    return {"random": {"train": train, "test": test}}


def default_params_split_random() -> dict:
    return {"split_ratio": 0.7}


def engine_split_random_stratified(
    data: pd.DataFrame,
    target_var: str,
    split_ratio: float,
    seed: int,
) -> Splits:
    train, test = train_test_split(
        data,
        train_size=split_ratio,
        random_state=seed,
        stratify=_strata(data[target_var]),
    )
    return {"random_stratified": {"train": train, "test": test}}


def default_params_split_random_stratified() -> dict:
    return {"split_ratio": 0.7}


def engine_split_cv(
    data: pd.DataFrame,
    target_var: str,
    cv_folds: int,
    seed: int,
) -> Splits:
    """
    Stratified k-fold; folds are named fold1 .. foldK.
    """
    labels = _strata(data[target_var])
    if labels is None:
        folds = KFold(n_splits=cv_folds, shuffle=True, random_state=seed).split(data)
    else:
        folds = StratifiedKFold(
            n_splits=cv_folds, shuffle=True, random_state=seed
        ).split(data, labels)

    splits: Splits = {}
    for i, (train_idx, test_idx) in enumerate(folds, start=1):
        splits[f"fold{i}"] = {
            "train": data.iloc[train_idx],
            "test": data.iloc[test_idx],
        }
    return splits


def default_params_split_cv() -> dict:
    return {"cv_folds": 5}


def _strata(y: pd.Series, max_classes: int = 10, bins: int = 5):
    """
    Stratification labels: discrete targets as-is, continuous targets
    binned into quantile groups. None when no usable strata exist.
    """
    if y.nunique() <= max_classes or not pd.api.types.is_numeric_dtype(y):
        labels = y
    else:
        labels = pd.qcut(y, q=bins, labels=False, duplicates="drop")

    # every stratum needs at least two members
    if labels.value_counts().min() < 2:
        return None
    return labels
