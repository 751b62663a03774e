# game/snake.py
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np

from config import (
    GRID_COLS, GRID_ROWS, GRID_COLS_RANGE, GRID_ROWS_RANGE, GRID_RESIZE_STEP,
    SPEED_CELLS_PER_SEC, SPEED_MS_RANGE, WRAP_AROUND,
)
from motion.types import DIRECTIONS

Cell = Tuple[int, int]

DIR_V = {"up": (0, -1), "down": (0, 1), "left": (-1, 0), "right": (1, 0)}


def clamp_int(value, lo: int, hi: int) -> int:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return lo
    if not math.isfinite(v):
        return lo
    return min(hi, max(lo, int(math.floor(v + 0.5))))


def speed_to_ms(cells_per_sec: float) -> int:
    return int(math.floor(1000.0 / max(1.0, cells_per_sec) + 0.5))


def resize_grid(cols: int, rows: int, steps: int) -> Tuple[int, int]:
    """Grows (steps > 0) or shrinks the board by whole resize steps, clamped to range."""
    dc, dr = GRID_RESIZE_STEP
    return (
        clamp_int(cols + dc * steps, *GRID_COLS_RANGE),
        clamp_int(rows + dr * steps, *GRID_ROWS_RANGE),
    )


@dataclass(frozen=True)
class SnakeOptions:
    cols: int
    rows: int
    wrap_around: bool
    speed_ms: int


@dataclass(frozen=True)
class OptionUpdateResult:
    grid_changed: bool
    speed_changed: bool
    restarted: bool


class SnakeGame:
    """
    Grid snake, driven by direction symbols and a fixed step interval.
    Rendering lives in game/app.py.
    """

    def __init__(
        self,
        cols: int = GRID_COLS,
        rows: int = GRID_ROWS,
        wrap_around: bool = WRAP_AROUND,
        speed_ms: int = speed_to_ms(SPEED_CELLS_PER_SEC),
        on_score_change: Optional[Callable[[int], None]] = None,
        on_game_over: Optional[Callable[[int], None]] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.cols = clamp_int(cols, *GRID_COLS_RANGE)
        self.rows = clamp_int(rows, *GRID_ROWS_RANGE)
        self.wrap_around = bool(wrap_around)
        self.speed_ms = clamp_int(speed_ms, *SPEED_MS_RANGE)
        self.on_score_change = on_score_change
        self.on_game_over = on_game_over
        self.rng = rng if rng is not None else np.random.default_rng()

        self.snake: List[Cell] = []
        self.food: Optional[Cell] = None
        self.direction = "right"
        self.next_direction = "right"
        self.score = 0
        self.running = False
        self.move_acc = 0.0
        self.reset()

    def start(self):
        self.stop()
        self.reset()
        self.running = True

    def stop(self):
        self.running = False
        self.move_acc = 0.0

    def is_running(self) -> bool:
        return self.running

    def get_options(self) -> SnakeOptions:
        return SnakeOptions(self.cols, self.rows, self.wrap_around, self.speed_ms)

    def update_options(self, cols=None, rows=None, wrap_around=None, speed_ms=None) -> OptionUpdateResult:
        prev_cols, prev_rows, prev_speed = self.cols, self.rows, self.speed_ms

        if cols is not None:
            self.cols = clamp_int(cols, *GRID_COLS_RANGE)
        if rows is not None:
            self.rows = clamp_int(rows, *GRID_ROWS_RANGE)
        if wrap_around is not None:
            self.wrap_around = bool(wrap_around)
        if speed_ms is not None:
            self.speed_ms = clamp_int(speed_ms, *SPEED_MS_RANGE)

        grid_changed = (prev_cols, prev_rows) != (self.cols, self.rows)
        speed_changed = prev_speed != self.speed_ms
        was_running = self.running

        if grid_changed:
            # old cells may be off the new board
            self.stop()
            self.reset()
            self.running = was_running
            return OptionUpdateResult(grid_changed, speed_changed, restarted=was_running)

        return OptionUpdateResult(grid_changed, speed_changed, restarted=False)

    def set_direction(self, direction: str):
        """
        Queues a turn. Only turns onto the other axis of the queued
        direction are accepted, so a single input can never reverse the snake.
        """
        if direction not in DIRECTIONS:
            return
        cur_x, cur_y = DIR_V[self.next_direction]
        new_x, new_y = DIR_V[direction]
        if (new_x != 0 and cur_x == 0) or (new_y != 0 and cur_y == 0):
            self.next_direction = direction

    def advance(self, dt: float) -> int:
        """Accumulates elapsed seconds; returns how many steps were taken."""
        if not self.running:
            self.move_acc = 0.0
            return 0

        self.move_acc += dt
        step_time = self.speed_ms / 1000.0
        steps = 0
        while self.running and self.move_acc >= step_time:
            self.move_acc -= step_time
            self.step()
            steps += 1
        return steps

    def step(self):
        if not self.running or not self.snake:
            return

        self.direction = self.next_direction
        vx, vy = DIR_V[self.direction]
        head = self.snake[0]
        nx, ny = head[0] + vx, head[1] + vy

        hits_wall = nx < 0 or nx >= self.cols or ny < 0 or ny >= self.rows
        if hits_wall and not self.wrap_around:
            self._game_over()
            return
        if self.wrap_around:
            nx %= self.cols
            ny %= self.rows

        new_head = (nx, ny)
        will_grow = new_head == self.food
        # the tail moves away this step unless we grow
        body = self.snake if will_grow else self.snake[:-1]
        if new_head in body:
            self._game_over()
            return

        self.snake.insert(0, new_head)
        if will_grow:
            self.score += 1
            if self.on_score_change:
                self.on_score_change(self.score)
            self.food = self.rand_food()
        else:
            self.snake.pop()

    def reset(self):
        cx, cy = self.cols // 2, self.rows // 2
        self.snake = [(cx, cy), (cx - 1, cy), (cx - 2, cy)]
        self.direction = "right"
        self.next_direction = "right"
        self.score = 0
        self.move_acc = 0.0
        if self.on_score_change:
            self.on_score_change(self.score)
        self.food = self.rand_food()

    def rand_food(self) -> Optional[Cell]:
        occupied = set(self.snake)
        if len(occupied) >= self.cols * self.rows:
            return None
        while True:
            p = (int(self.rng.integers(0, self.cols)), int(self.rng.integers(0, self.rows)))
            if p not in occupied:
                return p

    def _game_over(self):
        self.stop()
        if self.on_game_over:
            self.on_game_over(self.score)
