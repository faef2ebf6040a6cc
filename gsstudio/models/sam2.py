"""
SAM2 point-prompted segmentation on ONNX Runtime.

The encoder turns a 1024x1024 normalized image into an embedding plus two
high-resolution feature maps. The decoder combines those with point prompts
and returns mask logits at network input resolution.
"""

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import onnxruntime as ort
from PIL import Image

from gsstudio import config
from gsstudio.errors import InferenceError, ModelLoadError, ValidationError
from gsstudio.models.base import SegmentationBackend
from gsstudio.utils.cancellation import CancellationToken, check_cancelled
from gsstudio.utils.coords import validate_prompt
from gsstudio.utils.logger import get_logger

logger = get_logger(__name__)

ENCODER_INPUT = "image"
IMAGE_EMBED = "image_embed"
HIGH_RES_FEATS = ("high_res_feats_0", "high_res_feats_1")
MASKS_OUTPUT = "masks"


@dataclass
class EncodedImage:
    """
    Encoder outputs for one frame, reused across prompts on that frame.

    Valid only while the same frame stays selected; encode again when the
    frame changes.
    """
    image_embed: np.ndarray
    high_res_feats: List[np.ndarray]
    original_size: Tuple[int, int]  # (height, width) of the source image


def create_session(model_path: Union[str, Path], intra_threads: int = config.INTRA_OP_THREADS,
                   providers: Optional[List[str]] = None) -> ort.InferenceSession:
    """
    Create an ONNX Runtime session with full graph optimization.

    Raises:
        ModelLoadError: if the file is missing or the runtime rejects it
    """
    model_path = Path(model_path)
    if not model_path.exists():
        raise ModelLoadError("Model file not found", path=model_path, stage="load")

    sess_options = ort.SessionOptions()
    sess_options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
    sess_options.intra_op_num_threads = intra_threads

    try:
        return ort.InferenceSession(
            str(model_path),
            sess_options=sess_options,
            providers=providers or ["CPUExecutionProvider"],
        )
    except Exception as e:
        raise ModelLoadError(f"Failed to load model: {e}", path=model_path, stage="load") from e


def to_rgb_uint8(image: Union[np.ndarray, Image.Image]) -> np.ndarray:
    """Coerce a PIL image or an (H, W[, C]) array into (H, W, 3) uint8 RGB."""
    if isinstance(image, Image.Image):
        return np.asarray(image.convert("RGB"))

    array = np.asarray(image)
    if array.ndim == 2:
        array = np.stack([array] * 3, axis=-1)
    if array.ndim != 3 or array.shape[2] not in (3, 4) or array.shape[0] == 0 or array.shape[1] == 0:
        raise ValidationError(f"Expected an (H, W, 3) image, got shape {array.shape}")
    array = array[:, :, :3]

    if np.issubdtype(array.dtype, np.floating):
        # Float images are taken to be in the 0-1 range
        array = np.clip(array * 255.0, 0, 255)
    return array.astype(np.uint8)


class Sam2Engine(SegmentationBackend):
    """
    Owns one encoder and one decoder session.

    Each session accepts one call at a time; concurrent callers are
    serialized by a per-session lock.
    """

    def __init__(self, encoder, decoder, input_size: int = config.MODEL_INPUT_SIZE):
        """
        Args:
            encoder: Encoder session (``onnxruntime.InferenceSession`` or compatible)
            decoder: Decoder session
            input_size: Side of the square network input
        """
        self.encoder = encoder
        self.decoder = decoder
        self.input_size = input_size
        self._encoder_lock = threading.Lock()
        self._decoder_lock = threading.Lock()
        self._decoder_inputs = {i.name for i in decoder.get_inputs()}

    @classmethod
    def from_model_dir(cls, model_dir: Union[str, Path], model_name: str = config.MODEL_NAME,
                       intra_threads: int = config.INTRA_OP_THREADS,
                       providers: Optional[List[str]] = None) -> 'Sam2Engine':
        """
        Load ``<model_name>_encoder.onnx`` and ``<model_name>_decoder.onnx``.

        Both sessions must load before the engine is usable.
        """
        model_dir = Path(model_dir)
        encoder_path = model_dir / f"{model_name}{config.ENCODER_SUFFIX}"
        decoder_path = model_dir / f"{model_name}{config.DECODER_SUFFIX}"

        start = time.time()
        encoder = create_session(encoder_path, intra_threads, providers)
        decoder = create_session(decoder_path, intra_threads, providers)
        logger.info(f"Loaded {model_name} from {model_dir} in {time.time() - start:.2f}s")
        return cls(encoder, decoder)

    def preprocess(self, image) -> Tuple[np.ndarray, Tuple[int, int]]:
        """
        Resize to input_size x input_size with a triangle filter and normalize.

        Returns:
            (tensor of shape (1, 3, S, S) float32, (height, width) of the input)
        """
        rgb = to_rgb_uint8(image)
        original_size = (rgb.shape[0], rgb.shape[1])

        resized = Image.fromarray(rgb).resize((self.input_size, self.input_size), Image.BILINEAR)
        pixels = np.asarray(resized, dtype=np.float32)
        pixels = (pixels - np.array(config.PIXEL_MEAN, dtype=np.float32)) / \
            np.array(config.PIXEL_STD, dtype=np.float32)

        tensor = np.ascontiguousarray(pixels.transpose(2, 0, 1)[np.newaxis])
        return tensor, original_size

    def encode(self, tensor: np.ndarray, original_size: Tuple[int, int],
               cancel_token: Optional[CancellationToken] = None) -> EncodedImage:
        """
        Run the encoder once.

        Raises:
            ValidationError: if the tensor is not (1, 3, S, S)
            InferenceError: if the runtime fails or a named output is missing
        """
        expected = (1, 3, self.input_size, self.input_size)
        if tuple(tensor.shape) != expected:
            raise ValidationError(f"Encoder input must be {expected}, got {tuple(tensor.shape)}")
        check_cancelled(cancel_token, "encode")

        start = time.time()
        with self._encoder_lock:
            outputs = _run(self.encoder, {ENCODER_INPUT: tensor.astype(np.float32, copy=False)},
                           "encode")
        logger.debug(f"Encoder ran in {time.time() - start:.3f}s")

        missing = [name for name in (IMAGE_EMBED,) + HIGH_RES_FEATS if name not in outputs]
        if missing:
            raise InferenceError(
                f"Encoder outputs {missing} missing (got {sorted(outputs)}); "
                "model version mismatch?", stage="encode")

        return EncodedImage(
            image_embed=outputs[IMAGE_EMBED],
            high_res_feats=[outputs[name] for name in HIGH_RES_FEATS],
            original_size=(int(original_size[0]), int(original_size[1])),
        )

    def predict(self, encoded: EncodedImage, points: Sequence[Tuple[float, float]],
                labels: Sequence[float],
                cancel_token: Optional[CancellationToken] = None) -> List[np.ndarray]:
        """
        Decode masks for labelled points given in network input space.

        No prior mask is supplied. The returned masks are in network input
        resolution; map them onto the source image with
        ``gsstudio.utils.coords.mask_to_original(mask, encoded.original_size)``.

        Args:
            encoded: Result of ``encode`` for the current frame
            points: (x, y) pairs in network input space
            labels: 1 for foreground, 0 for background, one per point

        Returns:
            List holding one (batch, channel, height, width) float32 array

        Raises:
            ValidationError: if points and labels do not pair up
            InferenceError: if ``masks`` is missing or is not 4-D
        """
        pts, lbl = validate_prompt(points, labels)
        check_cancelled(cancel_token, "predict")
        n = len(pts)

        feeds = {
            IMAGE_EMBED: encoded.image_embed,
            HIGH_RES_FEATS[0]: encoded.high_res_feats[0],
            HIGH_RES_FEATS[1]: encoded.high_res_feats[1],
            "point_coords": pts.reshape(1, n, 2),
            "point_labels": lbl.reshape(1, n),
            "mask_input": np.zeros((1, 1, config.MASK_INPUT_SIZE, config.MASK_INPUT_SIZE),
                                   dtype=np.float32),
            "has_mask_input": np.zeros(1, dtype=np.float32),
        }
        if "orig_im_size" in self._decoder_inputs:
            # Keep masks in network space for exports that require this input
            feeds["orig_im_size"] = np.array([self.input_size, self.input_size], dtype=np.float32)

        start = time.time()
        with self._decoder_lock:
            outputs = _run(self.decoder, feeds, "predict")
        logger.debug(f"Decoder ran in {time.time() - start:.3f}s for {n} point(s)")

        if MASKS_OUTPUT not in outputs:
            raise InferenceError(f"Decoder output '{MASKS_OUTPUT}' missing (got {sorted(outputs)})",
                                 stage="predict")
        masks = np.asarray(outputs[MASKS_OUTPUT], dtype=np.float32)
        if masks.ndim != 4:
            raise InferenceError(f"Expected 4-D masks, got shape {masks.shape}", stage="predict")
        if masks.shape[1] < 1:
            raise InferenceError("Decoder returned no mask channels", stage="predict")
        return [masks]


def _run(session, feeds: Dict[str, np.ndarray], stage: str) -> Dict[str, np.ndarray]:
    """Run a session and key its outputs by name."""
    names = [output.name for output in session.get_outputs()]
    try:
        values = session.run(None, feeds)
    except Exception as e:
        raise InferenceError(f"Runtime failure: {e}", stage=stage) from e
    return dict(zip(names, values))
