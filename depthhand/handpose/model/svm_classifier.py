"""
SVM ensemble that scores hand candidates.

One epsilon-SVR with an RBF kernel is kept per finger-count bucket: one,
two, three, and four or more fingers. The regressor output is read as the
probability that the candidate is a hand.
"""

import os
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np
import cv2

from ...core import constants
from ...exceptions import ClassifierNotTrainedError, ModelLoadError, TrainingDataError
from . import training_data

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SVMHyperParams:
    """RBF epsilon-SVR hyper-parameters of one bucket."""
    gamma: float
    coef0: float
    c: float
    p: float


DEFAULT_HYPERPARAMS = (
    SVMHyperParams(gamma=0.8219, coef0=0.5, c=0.5000, p=9e-16),
    SVMHyperParams(gamma=0.3425, coef0=0.5, c=0.4041, p=1e-16),
    SVMHyperParams(gamma=0.3425, coef0=0.5, c=0.5493, p=1e-16),
    SVMHyperParams(gamma=0.2740, coef0=0.5, c=0.4100, p=1e-16),
)


def get_svm_idx(num_fingers: int) -> int:
    """Index of the regressor responsible for a finger count (n >= 1)."""
    return min(num_fingers - 1, constants.NUM_SVMS - 1)


def resolve_model_dir(path: Union[str, Path]) -> Path:
    """Prefix ``path`` with the directory named by the model environment variable, if set."""
    base = os.environ.get(constants.MODEL_DIR_ENV_VAR)
    if base:
        return Path(base) / path
    return Path(path)


def _create_svm(hyper: SVMHyperParams):
    svm = cv2.ml.SVM_create()
    svm.setType(cv2.ml.SVM_EPS_SVR)
    svm.setKernel(cv2.ml.SVM_RBF)
    svm.setGamma(hyper.gamma)
    svm.setCoef0(hyper.coef0)
    svm.setC(hyper.c)
    svm.setP(hyper.p)
    return svm


def _load_svm(path: Path):
    try:
        svm = cv2.ml.SVM_load(str(path))
    except cv2.error as e:
        raise ModelLoadError(str(path), str(e)) from e
    if svm is None or not svm.isTrained():
        raise ModelLoadError(str(path), "model is not trained")
    return svm


class SVMHandClassifier:
    """
    Ensemble of four SVM regressors, selected by finger count.

    The ensemble is either fully trained or untrained: loading fails closed
    when any model is missing or unusable. Models are loaded lazily on first
    use when a model directory is given. After a successful load or training
    the ensemble is only read, so one instance can serve several threads.
    """

    NUM_SVMS = constants.NUM_SVMS

    def __init__(self, model_dir: Optional[Union[str, Path]] = None, lazy: bool = True):
        """
        Initialize the classifier.

        Args:
            model_dir: Directory holding svm_0.xml ... svm_3.xml, resolved
                against the model environment variable
            lazy: Defer loading until the models are first needed
        """
        self.model_dir = model_dir
        self._svms: List = []
        self._trained = False
        self._load_attempted = False
        self._lock = threading.Lock()

        if model_dir is not None and not lazy:
            self.load(model_dir)

    get_svm_idx = staticmethod(get_svm_idx)

    def _ensure_loaded(self):
        if self._load_attempted or self.model_dir is None:
            return
        with self._lock:
            if not self._load_attempted:
                self._load(self.model_dir)

    def load(self, model_dir: Union[str, Path]) -> bool:
        """
        Load the ensemble from a directory.

        Args:
            model_dir: Directory holding the model files

        Returns:
            True if all models loaded; otherwise the ensemble is untrained
        """
        with self._lock:
            self.model_dir = model_dir
            return self._load(model_dir)

    def _load(self, model_dir: Union[str, Path]) -> bool:
        self._load_attempted = True
        directory = resolve_model_dir(model_dir)
        svms = []
        for i in range(self.NUM_SVMS):
            path = directory / constants.SVM_FILE_TEMPLATE.format(i)
            if not path.is_file():
                logger.warning(f"Hand classifier model missing: {path}")
                break
            try:
                svms.append(_load_svm(path))
            except ModelLoadError as e:
                logger.warning(str(e))
                break

        if len(svms) == self.NUM_SVMS:
            self._svms = svms
            self._trained = True
            logger.info(f"Loaded hand classifier from {directory}")
        else:
            self._svms = []
            self._trained = False
            logger.warning(f"Hand classifier in {directory} is incomplete; classifier disabled")
        return self._trained

    def is_trained(self) -> bool:
        """Whether every regressor is available, loading them if needed."""
        self._ensure_loaded()
        return self._trained

    def classify(self, features: Sequence[float]) -> float:
        """
        Score a feature vector.

        Args:
            features: Vector from the feature extractor; the first entry is the finger count

        Returns:
            Confidence in [0, 1]; 0 for an empty vector or no fingers

        Raises:
            ClassifierNotTrainedError: If the ensemble is not trained
        """
        if not self.is_trained():
            raise ClassifierNotTrainedError(None if self.model_dir is None else str(self.model_dir))

        if len(features) == 0:
            return 0.0
        num_fingers = int(features[0])
        if num_fingers < 1:
            return 0.0

        svm = self._svms[get_svm_idx(num_fingers)]
        var_count = svm.getVarCount()
        sample = np.zeros((1, var_count), dtype=np.float32)
        values = np.asarray(features[1:1 + var_count], dtype=np.float32)
        sample[0, :len(values)] = values
        if len(values) < var_count:
            logger.debug(f"Padding {len(values)} features to {var_count}")

        _, result = svm.predict(sample)
        return float(np.clip(result[0, 0], 0.0, 1.0))

    def train(self, data_dir: Union[str, Path],
              hyperparams: Sequence[SVMHyperParams] = DEFAULT_HYPERPARAMS) -> bool:
        """
        Train the ensemble from a training data directory.

        Args:
            data_dir: Directory with labels and features files
            hyperparams: One set of hyper-parameters per regressor

        Returns:
            True if training succeeded

        Raises:
            TrainingDataError: If the data is missing, malformed or leaves a bucket empty
        """
        samples = training_data.load_training_samples(data_dir)
        return self.train_samples(samples, hyperparams)

    def train_samples(self, samples: Sequence[training_data.TrainingSample],
                      hyperparams: Sequence[SVMHyperParams] = DEFAULT_HYPERPARAMS) -> bool:
        """Train the ensemble from labelled samples."""
        if len(hyperparams) != self.NUM_SVMS:
            raise TrainingDataError("hyperparameters", f"expected {self.NUM_SVMS} sets, got {len(hyperparams)}")

        sets = training_data.build_training_sets(samples, get_svm_idx)

        svms = []
        for i, (training_set, hyper) in enumerate(zip(sets, hyperparams)):
            logger.info(f"Training SVM {i} on {len(training_set)} samples, "
                        f"{training_set.data.shape[1]} features")
            svm = _create_svm(hyper)
            if not svm.train(training_set.data, cv2.ml.ROW_SAMPLE, training_set.labels):
                logger.error(f"Training SVM {i} failed")
                return False
            svms.append(svm)

        with self._lock:
            self._svms = svms
            self._trained = True
            self._load_attempted = True

        self.report_accuracy(sets)
        return True

    def report_accuracy(self, sets: Sequence[training_data.TrainingSet]) -> float:
        """
        Log the accuracy on labelled sets, per regressor and overall.

        Returns:
            Overall fraction of correctly classified samples
        """
        total = correct_total = 0
        for i, training_set in enumerate(sets):
            correct = 0
            for row, label, fingers in zip(training_set.data, training_set.labels[:, 0],
                                           training_set.num_fingers):
                score = self.classify(np.concatenate(([fingers], row)))
                if (score < 0.5 and label == 0) or (score > 0.5 and label == 1):
                    correct += 1
            if len(training_set):
                logger.info(f"SVM {i}: {correct}/{len(training_set)} correct "
                            f"({100.0 * correct / len(training_set):.2f}%)")
            total += len(training_set)
            correct_total += correct

        accuracy = correct_total / total if total else 0.0
        logger.info(f"Overall training accuracy: {100.0 * accuracy:.2f}%")
        return accuracy

    def export(self, directory: Union[str, Path]) -> bool:
        """
        Save the trained ensemble.

        Args:
            directory: Output directory, created if missing

        Returns:
            False if the ensemble is not trained
        """
        if not self.is_trained():
            logger.error("Cannot export an untrained hand classifier")
            return False

        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        for i, svm in enumerate(self._svms):
            svm.save(str(directory / constants.SVM_FILE_TEMPLATE.format(i)))
        logger.info(f"Exported hand classifier to {directory}")
        return True
