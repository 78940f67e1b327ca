from modules.voice.transcript import Debouncer, TranscriptAssembler


def _committed(assembler):
    return [(m.role, m.message) for m in assembler.messages]


class TestDebouncer:
    def test_only_latest_trigger_fires(self, timer_factory):
        calls = []
        debouncer = Debouncer(2.0, lambda: calls.append("fired"), timer_factory=timer_factory)

        debouncer.trigger()
        first = timer_factory.last
        debouncer.trigger()
        second = timer_factory.last

        assert first.cancelled
        first.fire()
        assert calls == []

        second.fire()
        assert calls == ["fired"]
        assert not debouncer.pending

    def test_cancel_discards_running_timer(self, timer_factory):
        calls = []
        debouncer = Debouncer(2.0, lambda: calls.append("fired"), timer_factory=timer_factory)
        debouncer.trigger()
        timer = timer_factory.last

        debouncer.cancel()
        timer.fire()

        assert calls == []

    def test_timers_are_daemons_with_configured_delay(self, timer_factory):
        Debouncer(1.5, lambda: None, timer_factory=timer_factory).trigger()
        assert timer_factory.last.daemon
        assert timer_factory.last.started
        assert timer_factory.last.delay == 1.5


class TestTranscriptAssembler:
    def test_assistant_then_user_with_idle_commit(self, timer_factory):
        t = TranscriptAssembler(idle_seconds=2.0, timer_factory=timer_factory)

        t.add_fragment("assistant", "Hello")
        t.add_fragment("assistant", "there")
        t.assistant_speech_end()
        t.add_fragment("user", "Hi")
        assert t.pending.message == "Hi"

        timer_factory.last.fire()

        assert _committed(t) == [("assistant", "Hello there"), ("user", "Hi")]
        assert t.pending is None

    def test_other_speaker_forces_flush(self, timer_factory):
        t = TranscriptAssembler(timer_factory=timer_factory)

        t.add_fragment("user", "I built")
        t.add_fragment("user", "a data pipeline")
        t.add_fragment("assistant", "Interesting.")

        assert _committed(t) == [("user", "I built a data pipeline")]
        assert t.pending.role == "assistant"

    def test_stale_idle_timer_does_not_split_an_utterance(self, timer_factory):
        t = TranscriptAssembler(timer_factory=timer_factory)

        t.add_fragment("user", "First part")
        stale = timer_factory.last
        t.add_fragment("user", "second part")
        stale.fire()

        assert _committed(t) == []
        timer_factory.last.fire()
        assert _committed(t) == [("user", "First part second part")]

    def test_late_idle_timer_leaves_assistant_turn_pending(self, timer_factory):
        t = TranscriptAssembler(timer_factory=timer_factory)
        t.add_fragment("user", "My answer")
        t.add_fragment("assistant", "Thanks, next")

        # an idle timeout arriving while the assistant is mid-sentence
        assert t.user_idle() is None
        assert _committed(t) == [("user", "My answer")]
        assert t.pending.role == "assistant"

        t.assistant_speech_end()
        assert _committed(t) == [("user", "My answer"), ("assistant", "Thanks, next")]

    def test_assistant_fragments_do_not_start_idle_timer(self, timer_factory):
        t = TranscriptAssembler(timer_factory=timer_factory)
        t.add_fragment("assistant", "Welcome")
        assert timer_factory.timers == []

    def test_blank_fragments_are_ignored(self, timer_factory):
        t = TranscriptAssembler(timer_factory=timer_factory)
        t.add_fragment("user", "   ")
        assert t.pending is None

    def test_system_message_commits_pending_first(self, timer_factory):
        t = TranscriptAssembler(timer_factory=timer_factory)
        t.add_fragment("user", "Hello?")
        t.add_system_message("Call connected.")
        assert _committed(t) == [("user", "Hello?"), ("system", "Call connected.")]

    def test_reset_clears_everything(self, timer_factory):
        t = TranscriptAssembler(timer_factory=timer_factory)
        t.add_fragment("user", "Hello")
        timer = timer_factory.last

        t.reset()
        timer.fire()

        assert t.messages == []
        assert t.pending is None

    def test_separate_conversations_do_not_share_timers(self, timer_factory):
        a = TranscriptAssembler(timer_factory=timer_factory)
        b = TranscriptAssembler(timer_factory=timer_factory)

        a.add_fragment("user", "from a")
        timer_a = timer_factory.last
        b.add_fragment("user", "from b")

        timer_a.fire()

        assert _committed(a) == [("user", "from a")]
        assert _committed(b) == []

    def test_to_dict_wire_form(self, timer_factory):
        t = TranscriptAssembler(timer_factory=timer_factory)
        t.add_system_message("Connected")
        entry = t.messages[0].to_dict()
        assert entry["role"] == "system"
        assert entry["isComplete"] is True
        assert "T" in entry["timestamp"]
