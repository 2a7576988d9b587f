import asyncio

from translator.display import (
    LOADING_TEXT,
    BufferedDisplay,
    DisplayEvent,
    DisplayStatus,
    DisplaySurface,
    EventStreamDisplay,
    IncrementalRenderer,
)


def test_buffered_display_lifecycle() -> None:
    display = BufferedDisplay()
    assert isinstance(display, DisplaySurface)
    assert display.status is DisplayStatus.IDLE

    display.show_loading()
    assert display.text == LOADING_TEXT

    display.append_fragment("Hola")
    display.append_fragment(" mundo")
    assert display.status is DisplayStatus.STREAMING
    assert display.text == "Hola mundo"

    display.set_final("Hola mundo!")
    assert display.status is DisplayStatus.FINAL
    assert display.text == "Hola mundo!"

    display.clear()
    assert display.status is DisplayStatus.IDLE
    assert display.text == ""


def test_show_error_discards_partial_output() -> None:
    display = BufferedDisplay()
    display.show_loading()
    display.append_fragment("partial")

    display.show_error("boom")

    assert display.status is DisplayStatus.ERROR
    assert display.error == "boom"
    assert display.text == "Error: boom"
    assert "partial" not in display.text


def test_display_event_serialises_as_server_sent_event() -> None:
    event = DisplayEvent("fragment", {"text": "¡Hola!"})

    assert event.to_sse() == 'event: fragment\ndata: {"text": "¡Hola!"}\n\n'


def test_event_stream_display_publishes_to_attached_queue_only() -> None:
    display = EventStreamDisplay()
    first: asyncio.Queue = asyncio.Queue()
    second: asyncio.Queue = asyncio.Queue()

    display.attach(first)
    display.show_loading()
    display.attach(second)
    display.append_fragment("Hola")
    display.detach(first)
    display.set_final("Hola")
    display.detach(second)
    display.show_error("ignored")

    assert first.get_nowait() == DisplayEvent("loading", {"text": LOADING_TEXT})
    assert first.empty()
    assert second.get_nowait() == DisplayEvent("fragment", {"text": "Hola", "html": "Hola"})
    assert second.get_nowait() == DisplayEvent("final", {"text": "Hola", "html": "<p>Hola</p>\n"})
    assert second.empty()
    assert display.status is DisplayStatus.ERROR


def test_markdown_split_across_fragments_is_replaced_by_final_render() -> None:
    renderer = IncrementalRenderer()

    assert renderer.write("**bo") == "**bo"
    assert renderer.write("ld**") == "ld**"
    assert renderer.rendered == "**bold**"

    assert renderer.replay("**bold**") == "<p><strong>bold</strong></p>\n"
    assert renderer.rendered == "<p><strong>bold</strong></p>\n"
    assert renderer.source == "**bold**"


def test_buffered_display_keeps_raw_text_and_html() -> None:
    display = BufferedDisplay()
    display.show_loading()
    assert display.html == ""

    display.append_fragment("**bo")
    display.append_fragment("ld**")
    assert display.text == "**bold**"
    assert display.html == "**bold**"

    display.set_final("**bold** <b>raw</b>")
    assert display.text == "**bold** <b>raw</b>"
    assert display.html == "<p><strong>bold</strong> &lt;b&gt;raw&lt;/b&gt;</p>\n"

    display.show_error("boom")
    assert display.html == ""
