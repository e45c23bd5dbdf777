from bubblepop.domain.enums import AudioSetting, UtteranceState
from bubblepop.domain.variants import VoiceParams
from bubblepop.services.narration_gate import NarrationGate


def test_done_callbacks_run_when_backend_finishes(narrator, backend):
    seen = []
    utt = narrator.speak("Find the color Red", VoiceParams(rate=0.9, pitch=1.2, language="en-US"))
    utt.add_done_callback(lambda u: seen.append(u.state))
    assert narrator.is_active
    assert backend.calls[-1] == {"text": "Find the color Red", "rate": 0.9, "pitch": 1.2, "language": "en-US"}

    backend.finish()
    assert seen == [UtteranceState.DONE]
    assert utt.completed()
    assert not narrator.is_active


def test_default_language_is_used_when_voice_has_none(narrator, backend):
    narrator.speak("hello")
    assert backend.calls[-1]["language"] == "en-GB"


def test_new_request_interrupts_the_active_one(narrator, backend):
    stopped = []
    first = narrator.speak("first", on_stopped=lambda: stopped.append("first"))
    second = narrator.speak("second")
    assert first.state is UtteranceState.STOPPED
    assert stopped == ["first"]
    assert narrator.active_utterance is second
    backend.finish()
    assert second.state is UtteranceState.DONE


def test_speech_disabled_drops_but_still_resolves(narrator, backend, audio):
    audio.setting = AudioSetting.NO_SPEECH
    seen = []
    utt = narrator.speak("ignored")
    utt.add_done_callback(lambda u: seen.append(u.state))
    assert seen == [UtteranceState.DROPPED]
    assert backend.spoken == []


def test_apply_audio_setting_stops_current_speech(narrator, audio):
    utt = narrator.speak("long sentence")
    audio.setting = AudioSetting.MUTE
    narrator.apply_audio_setting(AudioSetting.MUTE)
    assert utt.state is UtteranceState.STOPPED


def test_callbacks_after_close_are_ignored(narrator, backend):
    done = []
    narrator.speak("bye", on_done=lambda: done.append(1))
    pending = backend._on_done
    narrator.close()
    pending()
    assert done == []
    assert narrator.speak("again").state is UtteranceState.DROPPED


def test_backend_failure_resolves_failed(audio):
    class Broken:
        def speak(self, *a, **kw):
            raise RuntimeError("no voice")

        def stop(self):
            pass

    gate = NarrationGate(Broken(), audio)
    utt = gate.speak("hello")
    assert utt.state is UtteranceState.FAILED
    assert not gate.is_active


def test_cancel_stops_only_its_own_utterance(narrator):
    first = narrator.speak("first")
    assert first.cancel() is True
    assert first.state is UtteranceState.STOPPED
    assert first.cancel() is False
