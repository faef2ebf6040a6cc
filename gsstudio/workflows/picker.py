"""
Interactive frame picker: browse extracted frames, click the object of
interest, preview its mask and save the point into the project.
"""

from typing import Optional, Tuple

import numpy as np
from matplotlib import pyplot as plt
from matplotlib.widgets import Button, Slider

from gsstudio import config
from gsstudio.io.images import load_frame, mask_path, save_mask
from gsstudio.models.base import SegmentationBackend
from gsstudio.project.state import MaskTarget, Project
from gsstudio.utils.coords import DisplayRect, Prompt, display_to_source, mask_to_original
from gsstudio.utils.logger import get_logger

logger = get_logger(__name__)

MASK_COLOR = (1.0, 0.0, 1.0, 0.4)  # RGBA overlay


class FramePicker:
    """
    Holds the selection state behind the picker window.

    The embedding of the current frame is computed on the first click and
    reused for later clicks on the same frame; changing frame discards it.
    """

    def __init__(self, project: Project, engine: Optional[SegmentationBackend] = None,
                 target_id: str = config.DEFAULT_TARGET_ID):
        """
        Args:
            project: Project whose frames have been extracted
            engine: Optional backend for live mask preview
            target_id: Target the saved point is written to
        """
        self.project = project
        self.engine = engine
        self.target_id = target_id

        self.current_frame_idx = 1
        self.image: Optional[np.ndarray] = None
        self.pixel_coord: Optional[Tuple[int, int]] = None
        self.mask: Optional[np.ndarray] = None  # boolean, frame pixels
        self._encoded = None

        # UI components
        self.fig = None
        self.ax_main = None
        self.slider = None
        self.btn_save = None

    @property
    def resolution(self) -> Optional[Tuple[int, int]]:
        """Source (width, height): project setting, else the loaded frame's size."""
        if self.project.config.extraction.resolution is not None:
            return self.project.config.extraction.resolution
        if self.image is not None:
            return self.image.shape[1], self.image.shape[0]
        return None

    def set_frame(self, frame_idx: int):
        """Load a frame and drop the cached embedding and mask."""
        self.image = load_frame(self.project.frame_path(frame_idx))
        self.current_frame_idx = frame_idx
        self._encoded = None
        self.mask = None

    def select_pixel(self, x: int, y: int) -> Optional[np.ndarray]:
        """
        Select a source pixel and, with an engine, predict its mask.

        Returns:
            Boolean mask in frame pixels, or None without an engine
        """
        self.pixel_coord = (int(x), int(y))
        logger.info(f"Selected pixel ({x}, {y}) on frame {self.current_frame_idx}")
        if self.engine is None:
            return None

        if self.image is None:
            self.set_frame(self.current_frame_idx)
        if self._encoded is None:
            self._encoded = self.engine.encode_image(self.image)

        prompt = Prompt.from_source_click(self.pixel_coord, self.resolution)
        masks = self.engine.predict(self._encoded, prompt.points, prompt.labels)
        self.mask = mask_to_original(masks[0], self._encoded.original_size)
        return self.mask

    def save_selection(self) -> Optional[MaskTarget]:
        """Write the selected point to the target, save the project and the mask."""
        if self.pixel_coord is None:
            return None

        x, y = self.pixel_coord
        target = self.project.update_target_point(self.target_id, x, y)
        self.project.save()
        if self.mask is not None:
            save_mask(self.mask, mask_path(self.project.masks_dir, self.current_frame_idx,
                                           self.target_id))
        print(f"Successfully saved: {self.target_id} at ({x}, {y})")
        return target

    def run_interactive(self):
        """Launch the picker window."""
        self.set_frame(self.current_frame_idx)
        self._setup_ui()
        plt.show()

    def _setup_ui(self):
        self.fig = plt.figure(figsize=(12, 8))
        self.ax_main = self.fig.add_axes([0.05, 0.15, 0.9, 0.8])
        self._update_display()

        self.fig.canvas.mpl_connect('button_press_event', self._on_click)

        max_frames = max(1, self.project.state.extracted_frame_count)
        ax_slider = self.fig.add_axes([0.15, 0.06, 0.5, 0.03])
        self.slider = Slider(ax_slider, 'Frame', 1, max_frames, valinit=self.current_frame_idx,
                             valstep=1)
        self.slider.on_changed(self._on_frame_changed)

        self.btn_save = Button(self.fig.add_axes([0.72, 0.04, 0.2, 0.06]), 'Save Coordinates',
                               color='lightgreen')
        self.btn_save.on_clicked(lambda event: self.save_selection())

    def _display_rect(self) -> DisplayRect:
        """Axes extent in screen pixels with a top-left origin."""
        bbox = self.ax_main.get_window_extent()
        fig_height = self.fig.bbox.height
        return DisplayRect(bbox.x0, fig_height - bbox.y1, bbox.width, bbox.height)

    def _on_click(self, event):
        if event.inaxes != self.ax_main or event.x is None:
            return
        rect = self._display_rect()
        pos = (event.x, self.fig.bbox.height - event.y)
        if not rect.contains(*pos):
            return

        x, y = display_to_source(pos, rect, self.resolution)
        self.select_pixel(x, y)
        self._update_display()

    def _on_frame_changed(self, value):
        self.set_frame(int(value))
        self._update_display()

    def _update_display(self):
        self.ax_main.clear()
        self.ax_main.imshow(self.image)
        self.ax_main.set_axis_off()

        if self.mask is not None:
            overlay = np.zeros(self.mask.shape + (4,), dtype=np.float32)
            overlay[self.mask] = MASK_COLOR
            self.ax_main.imshow(overlay)

        if self.pixel_coord is not None:
            px, py = self.pixel_coord
            self.ax_main.plot(px, py, 'r+', markersize=40, markeredgewidth=3)
            self.ax_main.plot(px, py, 'o', color='yellow', markersize=6)
            title = f"Clicked Pixel: X={px}, Y={py}"
        else:
            title = f"Click on image to select {self.target_id}"

        # Keep the axes exactly on the image so clicks map to pixels
        height, width = self.image.shape[:2]
        self.ax_main.set_xlim(-0.5, width - 0.5)
        self.ax_main.set_ylim(height - 0.5, -0.5)

        self.ax_main.set_title(f"{self.project.config.project_name} | "
                               f"Frame {self.current_frame_idx} | {title}")
        if self.fig is not None:
            self.fig.canvas.draw_idle()
