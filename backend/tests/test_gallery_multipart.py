"""Tests for close-delimiter tracking on multipart upload streams."""

from corsono.gallery.multipart import DelimiterTracker


def _feed(tracker, *chunks):
    for chunk in chunks:
        tracker.feed(chunk)
    return tracker.seen


class TestDelimiterTracker:
    def test_complete_body(self):
        body = b'--XX\r\nContent-Disposition: form-data; name="a"\r\n\r\nabc\r\n--XX--\r\n'
        assert _feed(DelimiterTracker(b"XX"), body)

    def test_truncated_body(self):
        body = b'--XX\r\nContent-Disposition: form-data; name="a"\r\n\r\nabc'
        assert not _feed(DelimiterTracker(b"XX"), body)

    def test_part_delimiter_is_not_close(self):
        assert not _feed(DelimiterTracker(b"XX"), b"abc\r\n--XX\r\nmore")

    def test_delimiter_split_across_chunks(self):
        assert _feed(DelimiterTracker(b"boundary"), b"abc\r\n--boun", b"dar", b"y--")

    def test_delimiter_at_start_of_body(self):
        assert _feed(DelimiterTracker(b"XX"), b"--XX--")

    def test_delimiter_without_crlf_does_not_count(self):
        assert not _feed(DelimiterTracker(b"XX"), b"abc--XX--")

    def test_empty_chunks_ignored(self):
        assert _feed(DelimiterTracker(b"XX"), b"", b"\r\n--XX", b"", b"--")
