from unittest import mock

from accessnav.tts_stt.tts import SpeechAnnouncer, _speech_script


def test_speech_script_quotes_text():
    script = _speech_script("It's 50 m", 150)
    assert "engine.say(\"It's 50 m\")" in script
    assert "setProperty('rate', 150)" in script


def test_new_utterance_drops_queued_ones():
    announcer = SpeechAnnouncer(autostart=False)
    announcer.speak("In 80 meters, turn left")
    announcer.speak("Turn left", priority=True)

    assert announcer._queue.qsize() == 1
    assert announcer._queue.get_nowait() == "Turn left"


def test_new_utterance_cancels_the_running_one():
    announcer = SpeechAnnouncer(autostart=False)
    running = mock.Mock()
    running.poll.return_value = None
    announcer._current = running

    announcer.speak("Recalculating route")
    running.terminate.assert_called_once()


def test_finished_utterance_is_left_alone():
    announcer = SpeechAnnouncer(autostart=False)
    done = mock.Mock()
    done.poll.return_value = 0
    announcer._current = done

    announcer.speak("Turn right")
    done.terminate.assert_not_called()


def test_blank_text_is_ignored():
    announcer = SpeechAnnouncer(autostart=False)
    announcer.speak("   ")
    assert announcer._queue.empty()


def test_worker_runs_one_process_per_utterance():
    with mock.patch("accessnav.tts_stt.tts.subprocess.Popen") as popen:
        popen.return_value.wait.return_value = 0
        announcer = SpeechAnnouncer()
        announcer.speak("Start the route")
        announcer.wait_idle()
        announcer.close()

    assert popen.call_count == 1
    args = popen.call_args.args[0]
    assert "Start the route" in args[-1]
