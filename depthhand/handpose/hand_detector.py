"""
Hand detection on depth clusters.

``HandDetector`` runs the geometric pipeline on one cluster: edge
connectivity, area gate, contour and palm, wrist, fingers (with the single
finger fallback), the finger-count gate and finally the classifier.
``detect_hands`` applies it to every cluster of a frame.
"""

import time
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..cluster import Cluster
from ..core import constants
from ..core import utils
from ..params import ObjectParams
from .contour_geometry import compute_contour_geometry
from .edge_connectivity import check_edge_connected
from .finger_detection import FingerCandidate, detect_fingers
from .hand_types import Hand, HandDiagnostics, RejectionReason
from .logging_util import HandposeLogger
from .model.feature_extractor import extract_hand_features
from .model.svm_classifier import SVMHandClassifier
from .single_finger import detect_single_finger
from .wrist_locator import locate_wrist

logger = logging.getLogger(__name__)


@dataclass
class _HandBuilder:
    """Mutable accumulator for the fields of a Hand during detection."""
    values: dict = field(default_factory=dict)
    diagnostics: dict = field(default_factory=dict)

    def set(self, **kwargs):
        self.values.update(kwargs)

    def diag(self, **kwargs):
        self.diagnostics.update(kwargs)

    def set_fingers(self, fingers: Sequence[FingerCandidate]):
        self.set(fingers_ij=tuple(f.tip_ij for f in fingers),
                 fingers_xyz=tuple(f.tip_xyz for f in fingers),
                 defects_ij=tuple(f.defect_ij for f in fingers),
                 defects_xyz=tuple(f.defect_xyz for f in fingers))

    def build(self, rejection: RejectionReason = RejectionReason.NONE) -> Hand:
        diagnostics = HandDiagnostics(rejection=rejection, **self.diagnostics)
        return Hand(is_hand=rejection == RejectionReason.NONE, diagnostics=diagnostics,
                    **self.values)


class HandDetector:
    """
    Decide whether a cluster is a hand and recover its geometry.

    Detection never modifies the cluster and keeps no per-call state, so one
    detector can process several clusters concurrently.
    """

    def __init__(self, params: Optional[ObjectParams] = None,
                 classifier: Optional[SVMHandClassifier] = None):
        """
        Initialize the detector.

        Args:
            params: Detection parameters, a fresh ``ObjectParams()`` when None
            classifier: Hand classifier; when None and ``params.hand_use_svm``
                is set, one is created for ``params.svm_model_dir`` and
                loaded on first use
        """
        self.params = params if params is not None else ObjectParams()
        if classifier is None and self.params.hand_use_svm:
            classifier = SVMHandClassifier(self.params.svm_model_dir)
        self.classifier = classifier

    def detect(self, cluster: Cluster) -> Hand:
        """
        Run the detection pipeline on one cluster.

        Args:
            cluster: Cluster to analyse

        Returns:
            Hand; check ``is_hand`` before using its finger or wrist data
        """
        params = self.params
        builder = _HandBuilder()
        builder.set(bounding_box=cluster.bounding_box, frame_size=cluster.frame_size)

        if cluster.num_points == 0:
            return self._reject(builder, RejectionReason.EMPTY_CLUSTER, cluster)

        left, right = check_edge_connected(cluster, params)
        area = utils.surface_area(cluster.xyz_map)
        builder.set(left_edge_connected=left, right_edge_connected=right, surface_area=area)

        if not params.hand_min_area <= area <= params.hand_max_area:
            return self._reject(builder, RejectionReason.AREA, cluster, f"area {area:.4f}")
        if params.hand_require_edge_connected and not (left or right):
            return self._reject(builder, RejectionReason.NOT_EDGE_CONNECTED, cluster)

        geometry = compute_contour_geometry(cluster, params)
        if geometry.num_points == 0:
            return self._reject(builder, RejectionReason.EMPTY_CLUSTER, cluster)
        builder.set(boundary=geometry.boundary, hull=geometry.hull,
                    hull_indices=geometry.hull_indices, defects=tuple(geometry.defects),
                    palm_center_ij=cluster.to_frame(geometry.palm_center),
                    palm_center_xyz=geometry.palm_center_xyz,
                    circle_radius=geometry.circle_radius)

        wrist = locate_wrist(cluster, geometry, left or right, params)
        if wrist.contact_l >= 0:
            builder.diag(contact_indices=(wrist.contact_l, wrist.contact_r),
                         contact_ij=(cluster.to_frame(geometry.boundary[wrist.contact_l]),
                                     cluster.to_frame(geometry.boundary[wrist.contact_r])),
                         direction=wrist.direction)
        if not wrist.found:
            return self._reject(builder, RejectionReason.WRIST_NOT_FOUND, cluster)

        builder.set(wrist_ij=(cluster.to_frame(geometry.boundary[wrist.wrist_l]),
                              cluster.to_frame(geometry.boundary[wrist.wrist_r])),
                    wrist_xyz=(wrist.wrist_l_xyz, wrist.wrist_r_xyz))
        builder.diag(wrist_indices=(wrist.wrist_l, wrist.wrist_r))
        if not params.wrist_width_min <= wrist.width <= params.wrist_width_max:
            return self._reject(builder, RejectionReason.WRIST_WIDTH, cluster,
                                f"wrist width {wrist.width:.3f}")

        fingers, scan = detect_fingers(cluster, geometry, wrist, params)
        builder.diag(sorted_defects=tuple(scan.sorted_defects),
                     num_good_defects=len(scan.good_defects),
                     candidate_tip_indices=tuple(scan.tip_indices),
                     candidate_defect_indices=tuple(scan.defect_indices))

        if len(fingers) <= 1:
            single = detect_single_finger(cluster, geometry, scan.good_defects, params)
            fingers = [single] if single is not None else []
            builder.diag(used_single_finger_fallback=True)
        builder.set_fingers(fingers)

        if not constants.MIN_FINGERS <= len(fingers) <= constants.MAX_FINGERS:
            return self._reject(builder, RejectionReason.FINGER_COUNT, cluster,
                                f"{len(fingers)} fingers")

        if params.hand_use_svm and self.classifier is not None and self.classifier.is_trained():
            hand = builder.build()
            confidence = self.classifier.classify(extract_hand_features(hand, cluster))
            builder.set(confidence=confidence)
            if confidence < params.hand_svm_confidence_thresh:
                return self._reject(builder, RejectionReason.CLASSIFIER_CONFIDENCE, cluster,
                                    f"confidence {confidence:.2f}")

        hand = builder.build()
        logger.debug(f"Accepted {hand} for {cluster}")
        return hand

    @staticmethod
    def _reject(builder: _HandBuilder, reason: RejectionReason, cluster: Cluster,
                detail: str = "") -> Hand:
        logger.debug(f"Rejected {cluster}: {reason.to_display_name()}"
                     + (f" ({detail})" if detail else ""))
        return builder.build(reason)


def detect_hands(clusters: Sequence[Cluster], detector: Optional[HandDetector] = None,
                 max_workers: Optional[int] = None,
                 handpose_logger: Optional[HandposeLogger] = None) -> List[Hand]:
    """
    Detect hands among the clusters of one frame.

    Clusters are evaluated independently. Accepted hands are returned in
    order of decreasing classifier confidence; when the classifier scored
    them, every hand after the first must also reach the high confidence
    threshold.

    Args:
        clusters: Clusters of one frame
        detector: Detector to use, a default one if None
        max_workers: Evaluate clusters in a thread pool of this size if > 1
        handpose_logger: Optional logger receiving every verdict

    Returns:
        Accepted hands
    """
    detector = detector or HandDetector()
    start = time.perf_counter()

    if max_workers is not None and max_workers > 1 and len(clusters) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(detector.detect, clusters))
    else:
        results = [detector.detect(cluster) for cluster in clusters]

    if handpose_logger is not None:
        for hand in results:
            handpose_logger.log_detection(hand)

    accepted = [hand for hand in results if hand.is_hand]
    accepted.sort(key=lambda h: -1.0 if h.confidence is None else h.confidence, reverse=True)

    high_thresh = detector.params.hand_svm_high_confidence_thresh
    hands = accepted[:1] + [h for h in accepted[1:]
                            if h.confidence is None or h.confidence >= high_thresh]

    elapsed_ms = (time.perf_counter() - start) * 1000.0
    logger.debug(f"{len(hands)} hands from {len(clusters)} clusters in {elapsed_ms:.1f}ms")
    if handpose_logger is not None:
        handpose_logger.log_frame(hands, len(clusters))
    return hands
