import io

import pytest
from PIL import Image

from interview_coach.core.exceptions import InterviewStateError
from interview_coach.core.prompts import CLOSING_APOLOGY, OPENING_MESSAGE
from interview_coach.schemas.interview import InterviewType, Screen, Speaker
from interview_coach.services.interview import InterviewOrchestrator, InterviewSession, InterviewState
from interview_coach.services.interview.frame_correlator import FrameCorrelator, LatestFrameFeed
from interview_coach.services.interview.speech import ClientSpeechSink


class StaticFeed:
    def __init__(self, image):
        self.image = image
        self.released = False

    def read_frame(self):
        return self.image

    def release(self):
        self.released = True


def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), (0, 128, 0)).save(buffer, format="PNG")
    return buffer.getvalue()


def make_orchestrator(provider, fake_sleep, speech=None, frames=None):
    events = []
    orchestrator = InterviewOrchestrator(
        provider,
        InterviewSession(),
        speech=speech,
        frames=frames,
        listener=events.append,
        sleep=fake_sleep,
    )
    return orchestrator, events


def of_type(events, event_type):
    return [e["content"] for e in events if e["type"] == event_type]


async def test_opening_turn_speaks_then_goes_idle(provider, speech, fake_sleep, goal):
    orchestrator, events = make_orchestrator(provider, fake_sleep, speech=speech)

    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])

    assert provider.stream_calls == [OPENING_MESSAGE]
    assert orchestrator.state is InterviewState.SPEAKING
    assert speech.spoken == ["Tell me about yourself."]
    assert orchestrator.session.current_screen is Screen.INTERVIEW
    assert [u.speaker for u in orchestrator.session.transcript] == [Speaker.INTERVIEWER]
    assert of_type(events, "state")[:2] == ["thinking", "speaking"]
    assert of_type(events, "partial")[-1] == "Tell me about yourself."

    speech.finish()

    assert orchestrator.state is InterviewState.IDLE
    assert orchestrator.partial_reply == ""


async def test_opening_message_is_not_in_transcript(provider, fake_sleep, goal):
    orchestrator, _ = make_orchestrator(provider, fake_sleep)

    await orchestrator.start_interview(goal, [InterviewType.BEHAVIORAL])

    texts = [u.text for u in orchestrator.session.transcript]
    assert OPENING_MESSAGE not in texts
    assert orchestrator.state is InterviewState.IDLE


async def test_candidate_utterance_carries_mirrored_frame(make_provider, fake_sleep, goal):
    provider = make_provider(replies=["First question?", "Second question?"])
    feed = StaticFeed(Image.new("RGB", (4, 2), (255, 0, 0)))
    orchestrator, events = make_orchestrator(provider, fake_sleep, frames=FrameCorrelator(feed))
    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])

    orchestrator.start_listening()
    utterance = await orchestrator.submit_utterance("  I like SQL.  ")

    assert utterance.text == "I like SQL."
    assert utterance.image.startswith("data:image/jpeg;base64,")
    transcript = orchestrator.session.transcript
    assert [(u.speaker, u.text) for u in transcript] == [
        (Speaker.INTERVIEWER, "First question?"),
        (Speaker.CANDIDATE, "I like SQL."),
        (Speaker.INTERVIEWER, "Second question?"),
    ]
    assert provider.stream_calls[-1] == "I like SQL."
    candidate_events = [e for e in of_type(events, "utterance") if e["speaker"] == "candidate"]
    assert "image" not in candidate_events[0]


async def test_utterance_without_camera_has_no_image(provider, fake_sleep, goal):
    orchestrator, _ = make_orchestrator(provider, fake_sleep)
    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])

    utterance = await orchestrator.submit_utterance("Hello")

    assert utterance.image is None


async def test_blank_utterance_is_dropped(provider, fake_sleep, goal):
    orchestrator, _ = make_orchestrator(provider, fake_sleep)
    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])
    orchestrator.start_listening()

    assert await orchestrator.submit_utterance("   ") is None
    assert orchestrator.state is InterviewState.IDLE
    assert len(orchestrator.session.transcript) == 1
    assert len(provider.stream_calls) == 1


async def test_input_rejected_while_speaking(provider, speech, fake_sleep, goal):
    orchestrator, _ = make_orchestrator(provider, fake_sleep, speech=speech)
    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])

    assert not orchestrator.accepts_input
    with pytest.raises(InterviewStateError):
        await orchestrator.submit_utterance("Can I answer now?")
    with pytest.raises(InterviewStateError):
        orchestrator.start_listening()


async def test_stop_listening_discards_capture(provider, fake_sleep, goal):
    orchestrator, _ = make_orchestrator(provider, fake_sleep)
    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])

    orchestrator.start_listening()
    orchestrator.stop_listening()

    assert orchestrator.state is InterviewState.IDLE
    assert len(orchestrator.session.transcript) == 1


async def test_capture_failure_reports_error_and_keeps_interview(provider, fake_sleep, goal):
    orchestrator, events = make_orchestrator(provider, fake_sleep)
    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])
    orchestrator.start_listening()

    orchestrator.capture_failed("Microphone permission denied")

    assert orchestrator.state is InterviewState.IDLE
    errors = of_type(events, "error")
    assert errors[-1]["error_type"] == "CaptureUnavailableError"


async def test_transient_failures_retry_and_produce_one_reply(make_provider, fake_sleep, goal):
    provider = make_provider(turn_failures=2)
    orchestrator, events = make_orchestrator(provider, fake_sleep)

    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])

    assert fake_sleep.delays == [2.0, 4.0]
    statuses = of_type(events, "status")
    assert len(statuses) == 2
    assert "2 seconds" in statuses[0]
    interviewer = [u for u in orchestrator.session.transcript if u.speaker is Speaker.INTERVIEWER]
    assert [u.text for u in interviewer] == ["Tell me about yourself."]
    assert "partial garbage" not in interviewer[0].text


async def test_exhausted_retries_apologize_and_finish(make_provider, speech, fake_sleep, goal):
    provider = make_provider(turn_failures=3)
    orchestrator, events = make_orchestrator(provider, fake_sleep, speech=speech)

    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])

    assert len(provider.stream_calls) == 3
    assert speech.spoken == [CLOSING_APOLOGY]
    assert orchestrator.session.transcript[-1].text == CLOSING_APOLOGY
    assert orchestrator.state is InterviewState.SPEAKING

    speech.finish()

    assert orchestrator.state is InterviewState.FINISHED
    assert orchestrator.session.current_screen is Screen.RESULTS
    assert of_type(events, "navigate") == ["results"]


async def test_end_interview_requires_one_exchange(provider, fake_sleep, goal):
    orchestrator, _ = make_orchestrator(provider, fake_sleep)
    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])

    assert not orchestrator.can_end
    with pytest.raises(InterviewStateError):
        orchestrator.end_interview()

    await orchestrator.submit_utterance("My answer.")
    orchestrator.end_interview()

    assert orchestrator.state is InterviewState.FINISHED
    assert orchestrator.session.current_screen is Screen.RESULTS
    orchestrator.end_interview()
    assert orchestrator.state is InterviewState.FINISHED


async def test_only_shutdown_releases_camera(provider, fake_sleep, goal):
    feed = StaticFeed(Image.new("RGB", (2, 2)))
    orchestrator, _ = make_orchestrator(provider, fake_sleep, frames=FrameCorrelator(feed))
    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])
    await orchestrator.submit_utterance("Answer")

    orchestrator.end_interview()
    assert not feed.released

    orchestrator.shutdown()
    assert feed.released


async def test_restart_resets_transcript(provider, fake_sleep, goal):
    orchestrator, _ = make_orchestrator(provider, fake_sleep)
    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])
    await orchestrator.submit_utterance("Answer")
    first_id = orchestrator.session.interview_id

    await orchestrator.start_interview(goal, [InterviewType.BEHAVIORAL])

    assert len(orchestrator.session.transcript) == 1
    assert orchestrator.session.interview_id != first_id
    assert len(provider.started_goals) == 2


async def test_blank_reply_is_retried_then_apologized(make_provider, fake_sleep, goal):
    provider = make_provider(replies=["   "])
    orchestrator, _ = make_orchestrator(provider, fake_sleep)

    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])

    assert len(provider.stream_calls) == 3
    assert fake_sleep.delays == [2.0, 4.0]
    assert [u.text for u in orchestrator.session.transcript] == [CLOSING_APOLOGY]
    assert orchestrator.state is InterviewState.FINISHED
    assert orchestrator.session.current_screen is Screen.RESULTS


async def test_unexpected_turn_error_ends_with_apology(provider, speech, fake_sleep, goal):
    async def broken_stream(message):
        raise RuntimeError("provider bug")
        yield

    provider.stream_next_turn = broken_stream
    orchestrator, _ = make_orchestrator(provider, fake_sleep, speech=speech)

    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])

    assert fake_sleep.delays == []
    assert speech.spoken == [CLOSING_APOLOGY]
    assert orchestrator.state is InterviewState.SPEAKING

    speech.finish()

    assert orchestrator.state is InterviewState.FINISHED


async def test_second_interview_still_captures_frames(make_provider, fake_sleep, goal):
    provider = make_provider(replies=["Q1?", "Q2?", "Q3?", "Q4?"])
    feed = LatestFrameFeed()
    orchestrator, _ = make_orchestrator(provider, fake_sleep, frames=FrameCorrelator(feed))

    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])
    feed.push(png_bytes())
    first = await orchestrator.submit_utterance("First answer")
    orchestrator.end_interview()

    await orchestrator.start_interview(goal, [InterviewType.BEHAVIORAL])
    feed.push(png_bytes())
    second = await orchestrator.submit_utterance("Second answer")

    assert first.image.startswith("data:image/jpeg;base64,")
    assert second.image.startswith("data:image/jpeg;base64,")


async def test_late_playback_ack_does_not_end_new_interview(make_provider, fake_sleep, goal):
    provider = make_provider(turn_failures=3)
    events = []
    sink = ClientSpeechSink(events.append)
    orchestrator = InterviewOrchestrator(
        provider, InterviewSession(), speech=sink, listener=events.append, sleep=fake_sleep
    )
    await orchestrator.start_interview(goal, [InterviewType.TECHNICAL])
    assert sink.is_speaking

    restarted = make_provider()
    original_stream = restarted.stream_next_turn

    async def stream_with_late_ack(message):
        sink.playback_complete()
        async for fragment in original_stream(message):
            yield fragment

    restarted.stream_next_turn = stream_with_late_ack
    orchestrator.provider = restarted

    await orchestrator.start_interview(goal, [InterviewType.BEHAVIORAL])

    assert orchestrator.state is InterviewState.SPEAKING
    assert orchestrator.session.current_screen is Screen.INTERVIEW
    assert orchestrator.session.transcript[-1].text == "Tell me about yourself."
