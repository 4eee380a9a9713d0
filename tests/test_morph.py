"""Tests for the erase-then-type morph animation."""

from __future__ import annotations

import asyncio

import pytest

from client.morph import MorphAnimator, MorphState, morph_frames


class TestMorphFrames:
    def test_erases_then_types_only_the_middle(self):
        assert list(morph_frames("cat", "cut")) == ["ct", "cut"]

    def test_last_frame_is_target(self):
        for old, new in [("hello", "help!"), ("", "abc"), ("abc", ""), ("same start", "same end")]:
            frames = list(morph_frames(old, new))
            assert frames[-1] == new

    def test_identical_text_has_no_frames(self):
        assert list(morph_frames("x", "x")) == []

    def test_frames_keep_common_prefix_and_suffix(self):
        for frame in morph_frames("value: 10;", "value: 2048;"):
            assert frame.startswith("value: ")
            assert frame.endswith(";")


class TestMorphAnimator:
    @pytest.mark.asyncio
    async def test_animates_to_target(self):
        renders: list[list[str]] = []
        animator = MorphAnimator(renders.append, delay=0, text="a = 1\nb = 2\nc = 3")

        animator.animate_to("a = 1\nb = 20\n")
        assert animator.state is MorphState.ANIMATING
        await animator.wait()

        assert animator.state is MorphState.IDLE
        assert animator.lines == ["a = 1", "b = 20", ""]
        assert renders[-1] == ["a = 1", "b = 20", ""]
        assert animator.target is None

    @pytest.mark.asyncio
    async def test_new_target_supersedes_running_animation(self):
        renders: list[list[str]] = []
        animator = MorphAnimator(renders.append, delay=0.01, text="")

        first = animator.animate_to("aaaaaaaaaaaaaaaaaaaa")
        await asyncio.sleep(0.03)
        second = animator.animate_to("bbb")
        await asyncio.gather(first, second)

        assert animator.lines == ["bbb"]
        assert renders[-1] == ["bbb"]
        assert not any(frame == ["aaaaaaaaaaaaaaaaaaaa"] for frame in renders)

    @pytest.mark.asyncio
    async def test_cancel_stops_rendering(self):
        renders: list[list[str]] = []
        animator = MorphAnimator(renders.append, delay=0.01, text="x")

        task = animator.animate_to("a much longer line of text")
        await asyncio.sleep(0.02)
        animator.cancel()
        count = len(renders)
        await task

        assert len(renders) == count
        assert animator.state is MorphState.IDLE
