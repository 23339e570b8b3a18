import pytest

from forge_errors import FrameSinkError
from video_export import FfmpegFrameSink, MemoryFrameSink, NullFrameSink, ffmpeg_command


def test_memory_sink_checks_frame_size():
    sink = MemoryFrameSink(4, 2, 30)
    assert sink.frame_size == 24
    assert sink.write_frame(bytes(24))
    assert not sink.write_frame(bytes(10))
    assert sink.frames_written == 1
    sink.close()
    assert not sink.write_frame(bytes(24))
    assert len(sink.frames) == 1


def test_null_sink_counts():
    sink = NullFrameSink(2, 2, 60)
    for _ in range(3):
        sink.write_frame(bytes(12))
    assert sink.frames_written == 3


def test_ffmpeg_command():
    command = ffmpeg_command(1920, 1080, 60, "out.mp4")
    assert command[0] == "ffmpeg"
    assert command[command.index("-s") + 1] == "1920x1080"
    assert command[command.index("-r") + 1] == "60"
    assert command[-1] == "out.mp4"


def test_missing_encoder_gives_closed_sink(tmp_path):
    sink = FfmpegFrameSink(4, 2, 60, str(tmp_path / "out.mp4"), executable="no-such-encoder-binary")
    assert sink.closed
    assert not sink.write_frame(bytes(24))
    sink.close()


def test_missing_encoder_strict():
    with pytest.raises(FrameSinkError):
        FfmpegFrameSink(4, 2, 60, executable="no-such-encoder-binary", strict=True)
