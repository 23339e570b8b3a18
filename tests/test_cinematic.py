import math

from cinematic import CameraState, CinematicDirector, CinematicPhase, smoothstep


def test_phase_boundaries():
    phase_for = CinematicDirector.phase_for
    assert phase_for(0.0) is CinematicPhase.ZOOM_IN
    assert phase_for(0.0999) is CinematicPhase.ZOOM_IN
    assert phase_for(0.1) is CinematicPhase.TRACKING
    assert phase_for(0.8499) is CinematicPhase.TRACKING
    assert phase_for(0.85) is CinematicPhase.ZOOM_OUT
    assert phase_for(0.9999) is CinematicPhase.ZOOM_OUT


def test_zoom_curve():
    director = CinematicDirector(max_zoom=15.0)
    assert math.isclose(director.zoom_for(0.0), 1.0)
    assert math.isclose(director.zoom_for(0.05), 8.0)
    assert math.isclose(director.zoom_for(0.1), 15.0)
    assert math.isclose(director.zoom_for(0.5), 15.0)
    assert math.isclose(director.zoom_for(0.925), 8.0)
    assert director.zoom_for(0.999) < 1.01


def test_smoothstep_is_clamped():
    assert smoothstep(-1.0) == 0.0
    assert smoothstep(2.0) == 1.0
    assert smoothstep(0.5) == 0.5


def test_apply_follows_during_tracking_and_recentres_at_the_end():
    director = CinematicDirector()
    camera = CameraState(pan=(100.0, -40.0))
    director.engage()

    assert director.apply(camera, 0.5) is CinematicPhase.TRACKING
    assert camera.auto_follow

    assert director.apply(camera, 0.9) is CinematicPhase.ZOOM_OUT
    assert not camera.auto_follow
    assert math.isclose(camera.pan[0], 95.0)
    assert math.isclose(camera.pan[1], -38.0)


def test_disengaged_director_leaves_camera_alone():
    director = CinematicDirector()
    camera = CameraState(zoom=3.0)
    assert director.apply(camera, 0.5) is CinematicPhase.IDLE
    assert camera.zoom == 3.0


def test_completion_fires_exactly_once():
    director = CinematicDirector()
    assert not director.handle_wrap(recording=True)

    director.engage()
    assert not director.handle_wrap(recording=False)
    assert director.handle_wrap(recording=True)
    assert not director.engaged
    assert not director.handle_wrap(recording=True)

    director.engage()
    assert director.handle_wrap(recording=True)


def test_camera_zoom_is_clamped():
    camera = CameraState()
    assert camera.set_zoom(500.0) == 50.0
    assert camera.set_zoom(0.0) == 0.1
    camera.follow((3.0, -4.0))
    assert camera.pan == (-3.0, 4.0)
    camera.reset()
    assert camera.zoom == 1.0 and camera.pan == (0.0, 0.0)
