"""
Training data files for the hand classifier.

A data directory holds two files:

- ``labels.csv``: the number of samples, then one ``name label`` pair per
  sample (label 1 for a hand, 0 otherwise)
- ``features.csv``: a header line, then one
  ``name num_features num_fingers feature...`` row per sample, where
  ``num_fingers`` is the first feature and ``num_features - 1`` values follow

Fields may be separated by commas or whitespace.
"""

import re
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Sequence, Tuple, Union

import numpy as np

from ...core import constants
from ...exceptions import TrainingDataError
from .feature_extractor import feature_names

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r'[\s,]+')


@dataclass
class TrainingSample:
    """One labelled feature vector; ``features[0]`` is the finger count."""
    name: str
    label: int
    features: np.ndarray

    @property
    def num_fingers(self) -> int:
        return int(self.features[0])


@dataclass
class TrainingSet:
    """Samples of one finger-count bucket, ready for fitting."""
    data: np.ndarray  # (n, k) float32, finger count excluded
    labels: np.ndarray  # (n, 1) float32
    num_fingers: np.ndarray  # (n,) finger count of each row

    def __len__(self) -> int:
        return len(self.labels)


def _tokens(line: str) -> List[str]:
    return [t for t in _SEPARATORS.split(line.strip()) if t]


def read_labels(path: Union[str, Path]) -> List[Tuple[str, int]]:
    """
    Read a labels file.

    Raises:
        TrainingDataError: If the file is missing or malformed
    """
    try:
        with open(path, 'r') as f:
            tokens = _tokens(f.read())
    except OSError as e:
        raise TrainingDataError(str(path), f"cannot read labels: {e}") from e

    if not tokens:
        raise TrainingDataError(str(path), "empty labels file")

    try:
        count = int(tokens[0])
        pairs = [(tokens[i], int(tokens[i + 1])) for i in range(1, len(tokens) - 1, 2)]
    except ValueError as e:
        raise TrainingDataError(str(path), f"malformed label: {e}") from e

    if len(pairs) < count:
        logger.warning(f"{path} declares {count} samples but holds {len(pairs)}")
    return pairs[:count]


def read_features(path: Union[str, Path]) -> List[Tuple[str, np.ndarray]]:
    """
    Read a features file.

    Returns:
        List of (name, features) with the finger count as first feature

    Raises:
        TrainingDataError: If the file is missing or a row is malformed
    """
    try:
        with open(path, 'r') as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise TrainingDataError(str(path), f"cannot read features: {e}") from e

    rows = []
    for line_no, line in enumerate(lines[1:], start=2):
        tokens = _tokens(line)
        if not tokens:
            continue
        try:
            num_features = int(tokens[1])
            values = [float(tokens[2])] + [float(v) for v in tokens[3:2 + num_features]]
        except (IndexError, ValueError) as e:
            raise TrainingDataError(str(path), f"line {line_no}: {e}") from e
        if len(values) != num_features:
            raise TrainingDataError(str(path), f"line {line_no}: expected {num_features} "
                                               f"features, found {len(values)}")
        rows.append((tokens[0], np.asarray(values, dtype=np.float64)))
    return rows


def join_samples(labels: Sequence[Tuple[str, int]],
                 features: Sequence[Tuple[str, np.ndarray]]) -> Iterator[TrainingSample]:
    """
    Pair feature rows with labels by name.

    Both sequences are consumed in order. For each feature row, labels are
    skipped until one with the same name appears; once the labels run out,
    the remaining rows are dropped.
    """
    label_iter = iter(labels)
    for name, values in features[:len(labels)]:
        for label_name, label in label_iter:
            if label_name == name:
                yield TrainingSample(name=name, label=label, features=values)
                break
            logger.debug(f"Skipping label '{label_name}' while looking for '{name}'")
        else:
            logger.warning(f"No label found for sample '{name}', ignoring remaining samples")
            return


def load_training_samples(data_dir: Union[str, Path]) -> List[TrainingSample]:
    """Read and join the labels and features files of a data directory."""
    data_dir = Path(data_dir)
    labels = read_labels(data_dir / constants.DATA_LABELS_FILE_NAME)
    features = read_features(data_dir / constants.DATA_FEATURES_FILE_NAME)
    samples = list(join_samples(labels, features))
    logger.info(f"Loaded {len(samples)} samples from {data_dir}")
    return samples


def build_training_sets(samples: Sequence[TrainingSample], svm_index) -> List[TrainingSet]:
    """
    Bucket samples by classifier index.

    Samples without fingers are dropped. Each bucket is truncated to the
    shortest feature row it contains.

    Args:
        samples: Labelled samples
        svm_index: Maps a finger count to a bucket index

    Returns:
        One TrainingSet per bucket

    Raises:
        TrainingDataError: If a bucket receives no samples
    """
    buckets: List[List[TrainingSample]] = [[] for _ in range(constants.NUM_SVMS)]
    for sample in samples:
        if sample.num_fingers < 1:
            continue
        buckets[svm_index(sample.num_fingers)].append(sample)

    sets = []
    for idx, bucket in enumerate(buckets):
        if not bucket:
            raise TrainingDataError("training samples", f"no samples for classifier {idx}")
        width = min(len(s.features) for s in bucket) - 1
        data = np.array([s.features[1:1 + width] for s in bucket], dtype=np.float32)
        labels = np.array([[s.label] for s in bucket], dtype=np.float32)
        num_fingers = np.array([s.num_fingers for s in bucket], dtype=np.int32)
        sets.append(TrainingSet(data=data, labels=labels, num_fingers=num_fingers))
        logger.debug(f"Classifier {idx}: {len(bucket)} samples, {width} features")
    return sets


def write_training_files(data_dir: Union[str, Path], samples: Sequence[TrainingSample]) -> None:
    """
    Write samples in the format read by :func:`load_training_samples`.

    Args:
        data_dir: Output directory, created if missing
        samples: Samples to write
    """
    data_dir = Path(data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)

    with open(data_dir / constants.DATA_LABELS_FILE_NAME, 'w') as f:
        f.write(f"{len(samples)}\n")
        for sample in samples:
            f.write(f"{sample.name},{sample.label}\n")

    widest = max((sample.num_fingers for sample in samples), default=1)
    with open(data_dir / constants.DATA_FEATURES_FILE_NAME, 'w') as f:
        f.write(",".join(['name', 'num_features'] + feature_names(max(widest, 1))) + "\n")
        for sample in samples:
            values = ",".join(repr(float(v)) for v in sample.features[1:])
            row = f"{sample.name},{len(sample.features)},{sample.num_fingers}"
            f.write(row + ("," + values if values else "") + "\n")

    logger.info(f"Wrote {len(samples)} samples to {data_dir}")
