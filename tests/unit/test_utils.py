import pytest

from caregrowth.core.domain.utils import chunk_text_with_offsets, normalize_text


class TestChunkTextWithOffsets:
    """Unit tests for the chunking helper."""

    @pytest.mark.unit
    def test_short_text_returns_single_chunk(self):
        """Texts shorter than chunk_size should not be split."""
        text = "Short text"
        assert chunk_text_with_offsets(text, chunk_size=50, chunk_overlap=10) == [(0, text)]

    @pytest.mark.unit
    def test_empty_text_returns_empty_list(self):
        assert chunk_text_with_offsets("", chunk_size=50, chunk_overlap=10) == []
        assert chunk_text_with_offsets("   \n ", chunk_size=50, chunk_overlap=10) == []

    @pytest.mark.unit
    def test_overlap_equal_or_exceeds_chunk_size_raises(self):
        """Invalid overlap that prevents progress should raise an error."""
        with pytest.raises(ValueError):
            chunk_text_with_offsets("content", chunk_size=100, chunk_overlap=100)

        with pytest.raises(ValueError):
            chunk_text_with_offsets("content", chunk_size=50, chunk_overlap=75)

    @pytest.mark.unit
    def test_invalid_sizes_raise(self):
        with pytest.raises(ValueError):
            chunk_text_with_offsets("content", chunk_size=0, chunk_overlap=0)
        with pytest.raises(ValueError):
            chunk_text_with_offsets("content", chunk_size=10, chunk_overlap=-1)

    @pytest.mark.unit
    def test_long_text_is_split_with_overlap(self):
        text = " ".join(f"word{i}" for i in range(200))
        chunks = [chunk for _, chunk in chunk_text_with_offsets(text, 100, 20)]

        assert len(chunks) > 1
        assert all(len(chunk) <= 100 for chunk in chunks)
        # Overlap means the tail of one chunk reappears at the head of the next
        assert chunks[0][-10:] in chunks[1]

    @pytest.mark.unit
    def test_prefers_sentence_boundaries(self):
        text = "This is the first sentence of the policy. " * 10
        chunks = [chunk for _, chunk in chunk_text_with_offsets(text, 120, 10)]

        assert all(chunk.endswith(".") for chunk in chunks[:-1])

    @pytest.mark.unit
    def test_offsets_point_into_source_text(self):
        text = "Caregivers log visits daily. Supervisors review notes weekly. " * 30
        pieces = chunk_text_with_offsets(text, chunk_size=200, chunk_overlap=50)

        offsets = [offset for offset, _ in pieces]
        assert offsets == sorted(offsets)
        for offset, chunk in pieces:
            assert text[offset : offset + len(chunk)] == chunk

    @pytest.mark.unit
    def test_covers_whole_text(self):
        text = "abcdefghij" * 50
        pieces = chunk_text_with_offsets(text, chunk_size=100, chunk_overlap=10)

        assert pieces[0][0] == 0
        last_offset, last_chunk = pieces[-1]
        assert last_offset + len(last_chunk) == len(text)


class TestNormalizeText:
    """Unit tests for boundary text normalization."""

    @pytest.mark.unit
    def test_removes_bom_and_collapses_whitespace(self):
        text = "\ufeffRésumé   café\r\n\r\n\r\na"
        assert normalize_text(text) == "Résumé café\n\na"

    @pytest.mark.unit
    def test_strips_replacement_characters(self):
        assert normalize_text("Policy\ufffd text") == "Policy text"

    @pytest.mark.unit
    def test_trims_spaces_around_newlines(self):
        assert normalize_text("  line one  \n   line two\t") == "line one\nline two"

    @pytest.mark.unit
    def test_nfkc_normalization(self):
        assert normalize_text("\ufb01le") == "file"

    @pytest.mark.unit
    def test_empty_input(self):
        assert normalize_text("") == ""
        assert normalize_text(None) == ""
