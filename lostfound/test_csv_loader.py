import pytest

from lostfound.csv_loader import load_csv
from lostfound.errors import NoRecordsError


def test_header_and_rows():
    table = load_csv("Nazwa;Kolor\nTelefon;czarny\nKlucze;srebrny\n")

    assert table.header == ["Nazwa", "Kolor"]
    assert table.rows == [["Telefon", "czarny"], ["Klucze", "srebrny"]]
    assert table.row_count == 2


def test_ordinal_column_is_dropped():
    table = load_csv("Lp.;Nazwa;Kolor\n1;Telefon;czarny\n2;Portfel;brązowy\n")

    assert table.header == ["Nazwa", "Kolor"]
    assert table.rows == [["Telefon", "czarny"], ["Portfel", "brązowy"]]


def test_ordinal_column_detection_ignores_case_and_spaces():
    table = load_csv("  LP ;Nazwa\n1;Telefon\n")
    assert table.header == ["Nazwa"]


def test_ragged_rows_are_padded_and_truncated():
    table = load_csv("A;B;C\n1\n1;2;3;4;5\n")

    assert table.rows == [["1", "", ""], ["1", "2", "3"]]
    assert all(len(row) == len(table.header) for row in table.rows)


def test_values_are_trimmed_and_blank_lines_skipped():
    table = load_csv("\ufeff Nazwa ; Kolor \r\n\r\n  Telefon ;  czarny \r\n ; \r\n")

    assert table.header == ["Nazwa", "Kolor"]
    assert table.rows == [["Telefon", "czarny"]]


def test_title_line_with_bad_quoting_is_skipped():
    text = '"Rejestr" 2024\nNazwa;Kolor\nTelefon;czarny\n'

    table = load_csv(text)

    assert table.header == ["Nazwa", "Kolor"]
    assert table.rows == [["Telefon", "czarny"]]


def test_single_line_is_loaded_headerless():
    table = load_csv("Telefon;czarny;Warszawa")

    assert table.header == ["col0", "col1", "col2"]
    assert table.rows == [["Telefon", "czarny", "Warszawa"]]


def test_headerless_quoted_delimiter_stays_in_cell():
    table = load_csv('"Telefon; czarny";Warszawa\n\n')

    assert table.header == ["col0", "col1"]
    assert table.rows == [["Telefon; czarny", "Warszawa"]]


def test_blank_and_duplicate_header_names_are_made_unique():
    table = load_csv("Nazwa;;Nazwa\nTelefon;x;y\n")
    assert table.header == ["Nazwa", "col1", "Nazwa.1"]


@pytest.mark.parametrize("text", ["", "   ", "\n\n", ";;\n ; \n"])
def test_empty_content_raises(text):
    with pytest.raises(NoRecordsError):
        load_csv(text)


def test_only_ordinal_column_raises():
    with pytest.raises(NoRecordsError):
        load_csv("Lp.\n1\n2\n")


def test_custom_delimiter():
    table = load_csv("Nazwa,Kolor\nTelefon,czarny\n", delimiter=",")
    assert table.rows == [["Telefon", "czarny"]]


def test_source_row_joins_non_empty_cells():
    table = load_csv("Nazwa;Kolor;Miejsce\nTelefon;;Warszawa\n")
    assert table.source_row(0) == "Telefon, Warszawa"


def test_to_csv_text_round_trips_through_loader():
    table = load_csv("Nazwa;Kolor\nTelefon;czarny\n")

    text = table.to_csv_text()

    assert text.splitlines()[0] == "Nazwa;Kolor"
    assert load_csv(text).rows == table.rows
