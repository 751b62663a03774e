# game/app.py
import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

import pygame

from config import (
    WIN_W, WIN_H, HUD_H, GRID_COLS, GRID_ROWS, SPEED_CELLS_PER_SEC, SPEED_RANGE,
    WRAP_AROUND, MIRROR, SENSITIVITY, SHOW_CAMERA,
)
from game.snake import SnakeGame, clamp_int, resize_grid, speed_to_ms
from motion.controller import HeadMotionController
from motion.errors import MotionError

logger = logging.getLogger(__name__)

KEY_DIRS = {
    pygame.K_UP: "up",
    pygame.K_DOWN: "down",
    pygame.K_LEFT: "left",
    pygame.K_RIGHT: "right",
}
DIR_LABEL = {"up": "UP", "down": "DOWN", "left": "LEFT", "right": "RIGHT"}


@dataclass
class PendingDirection:
    direction: str = ""
    confidence: float = 0.0
    fresh: bool = False


class CalibrationJob:
    """
    Runs `controller.calibrate()` on its own thread so the pygame loop keeps
    handling events and drawing. The loop picks up the outcome with `poll()`.
    """

    def __init__(self, controller):
        self.controller = controller
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._outcome: Optional[str] = None

    def busy(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        if self.busy():
            return False
        with self._lock:
            self._outcome = None
        self._thread = threading.Thread(target=self._run, daemon=True, name="Calibration")
        self._thread.start()
        return True

    def poll(self) -> Optional[str]:
        """Status text once calibration finished, else None. Each outcome is returned once."""
        with self._lock:
            outcome, self._outcome = self._outcome, None
        return outcome

    def _run(self):
        try:
            self.controller.calibrate()
            outcome = "Calibrated. ENTER to start."
        except MotionError as e:
            logger.info("Calibration: %s", e)
            outcome = f"Calibration failed: {e}"
        with self._lock:
            self._outcome = outcome


def draw_board(screen, game: SnakeGame, top: int):
    cell = max(4, min(WIN_W // game.cols, (WIN_H - top) // game.rows))
    width, height = game.cols * cell, game.rows * cell

    pygame.draw.rect(screen, (4, 20, 13), pygame.Rect(0, top, width, height))
    for x in range(game.cols + 1):
        pygame.draw.line(screen, (20, 70, 50), (x * cell, top), (x * cell, top + height))
    for y in range(game.rows + 1):
        pygame.draw.line(screen, (20, 70, 50), (0, top + y * cell), (width, top + y * cell))

    if game.food is not None:
        fx, fy = game.food
        pygame.draw.circle(
            screen, (255, 106, 77),
            (fx * cell + cell // 2, top + fy * cell + cell // 2), max(2, int(cell * 0.3)),
        )

    for i, (x, y) in enumerate(game.snake):
        c = (214, 255, 216) if i == 0 else (34, 243, 155)
        pygame.draw.rect(screen, c, pygame.Rect(x * cell + 2, top + y * cell + 2, cell - 4, cell - 4))


def run_game(
    camera_index=None,
    sensitivity: float = SENSITIVITY,
    mirror: bool = MIRROR,
    cols: int = GRID_COLS,
    rows: int = GRID_ROWS,
    speed: int = SPEED_CELLS_PER_SEC,
    wrap_around: bool = WRAP_AROUND,
    show_camera: bool = SHOW_CAMERA,
):
    pygame.init()
    screen = pygame.display.set_mode((WIN_W, WIN_H))
    pygame.display.set_caption("NeckSnake - turn your head to steer")
    clock = pygame.time.Clock()
    font = pygame.font.SysFont("Consolas", 18)

    if camera_index is None:
        controller = HeadMotionController(
            mirror_horizontal=mirror, sensitivity=sensitivity, show_camera=show_camera,
        )
    else:
        from motion.camera import open_camera
        controller = HeadMotionController(
            camera_factory=lambda: open_camera([camera_index]),
            mirror_horizontal=mirror, sensitivity=sensitivity, show_camera=show_camera,
        )

    lock = threading.Lock()
    pending = PendingDirection()

    def on_direction(event):
        with lock:
            pending.direction = event.direction
            pending.confidence = event.confidence
            pending.fresh = True

    controller.on_direction(on_direction)
    calibration = CalibrationJob(controller)

    best = 0
    status = "O: open camera"
    speed = clamp_int(speed, *SPEED_RANGE)

    def on_game_over(score: int):
        nonlocal best, status
        best = max(best, score)
        status = f"Game over, score {score}. ENTER to restart."

    game = SnakeGame(
        cols=cols, rows=rows, wrap_around=wrap_around, speed_ms=speed_to_ms(speed),
        on_game_over=on_game_over,
    )

    last_dir, last_conf = "-", "-"
    last_time = time.monotonic()

    def render():
        snap = controller.get_snapshot()
        screen.fill((12, 12, 14))
        hud = [
            f"Score: {game.score}  Best: {best}  Speed: {speed}/s  Grid: {game.cols}x{game.rows}  Wrap: {'ON' if game.wrap_around else 'OFF'}",
            f"Status: {status}",
            f"Tracking: {'OK' if snap.tracking else 'LOST'} | FPS: {snap.fps or '-'} | "
            f"Dir: {last_dir} ({last_conf}) | {snap.debug}",
        ]
        for i, text in enumerate(hud):
            screen.blit(font.render(text, True, (220, 220, 220)), (8, 6 + 22 * i))
        draw_board(screen, game, HUD_H)
        pygame.display.flip()

    try:
        while True:
            now = time.monotonic()
            dt = now - last_time
            last_time = now

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    return
                if event.type != pygame.KEYDOWN:
                    continue

                if event.key == pygame.K_ESCAPE:
                    return
                if event.key == pygame.K_o:
                    try:
                        controller.start()
                        status = "Camera on. Sit straight, then C to calibrate."
                    except MotionError as e:
                        status = f"Camera failed: {e}"
                if event.key == pygame.K_c:
                    if not controller.is_running:
                        status = "Open the camera first (O)."
                    elif calibration.start():
                        status = "Calibrating, hold a neutral pose..."
                if event.key == pygame.K_RETURN:
                    snap = controller.get_snapshot()
                    if not controller.is_running:
                        status = "Open the camera first (O)."
                    elif not snap.calibrated:
                        status = "Calibrate first (C)."
                    else:
                        game.start()
                        last_dir, last_conf = "-", "-"
                        status = "Playing: turn your head to steer."
                if event.key == pygame.K_m:
                    controller.set_mirror_horizontal(not controller.mirror_horizontal)
                    status = f"Mirror {'ON' if controller.mirror_horizontal else 'OFF'}"
                if event.key == pygame.K_w:
                    game.update_options(wrap_around=not game.wrap_around)
                    status = f"Wrap-around {'ON' if game.wrap_around else 'OFF'}"
                if event.key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_MINUS):
                    step = -1 if event.key == pygame.K_MINUS else 1
                    speed = clamp_int(speed + step, *SPEED_RANGE)
                    game.update_options(speed_ms=speed_to_ms(speed))
                if event.key in (pygame.K_LEFTBRACKET, pygame.K_RIGHTBRACKET):
                    steps = -1 if event.key == pygame.K_LEFTBRACKET else 1
                    new_cols, new_rows = resize_grid(game.cols, game.rows, steps)
                    res = game.update_options(cols=new_cols, rows=new_rows)
                    if res.grid_changed:
                        status = f"Grid {game.cols}x{game.rows}" + (" (restarted)" if res.restarted else "")
                # keyboard fallback
                if event.key in KEY_DIRS and game.is_running():
                    game.set_direction(KEY_DIRS[event.key])

            outcome = calibration.poll()
            if outcome is not None:
                status = outcome

            with lock:
                g_dir, g_conf, g_fresh = pending.direction, pending.confidence, pending.fresh
                pending.fresh = False

            if g_fresh:
                last_dir, last_conf = DIR_LABEL[g_dir], f"{round(g_conf * 100)}%"
                if game.is_running():
                    game.set_direction(g_dir)

            game.advance(dt)
            render()
            clock.tick(60)
    finally:
        controller.stop()
        pygame.quit()
