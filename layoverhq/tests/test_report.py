import pathlib

import pytest
from conftest import make_offer, make_segment

from layoverhq.layovers import annotate
from layoverhq.models import Carrier
from layoverhq.report import layover_frame, summarize, summarize_airlines, summarize_airports
from layoverhq.scoring import score


@pytest.fixture
def offers(doha_connection):
    via_ist = [
        make_segment("LOS", "IST", "2025-08-21T02:00:00", 390, airline="TK"),
        make_segment("IST", "ATL", "2025-08-21T15:30:00", 720, airline="TK"),
    ]
    turkish = make_offer("tk", total=610.0, outbound=via_ist)
    return [
        annotate(make_offer("qr-1", total=520.0, outbound=doha_connection)),
        make_offer("qr-2", total=480.0, outbound=doha_connection),
        turkish.model_copy(update={"airline": Carrier(code="TK")}),
        make_offer("direct", total=900.0),
    ]


def test_layover_frame_derives_missing_windows(offers):
    df = layover_frame(offers)
    assert list(df["offer_id"]) == ["qr-1", "qr-2", "tk"]
    assert list(df["duration_minutes"]) == [210, 210, 420]
    assert list(df["explorable"]) == [True, True, True]


def test_summarize_airports(offers):
    df = summarize_airports(offers)
    assert list(df["airport"]) == ["DOH", "IST"]
    doh = df.iloc[0]
    assert doh["city"] == "Doh"
    assert doh["windows"] == 2
    assert doh["mean_minutes"] == pytest.approx(210)
    assert doh["explorable"] == 2


def test_summarize_airlines(offers):
    df = summarize_airlines(offers)
    assert list(df["airline"]) == ["QR", "TK"]
    qr = df.iloc[0]
    assert qr["name"] == "Qatar Airways"
    assert qr["offers"] == 3
    assert qr["cheapest"] == pytest.approx(480.0)
    expected = (score(offers[0]) + score(offers[1]) + score(offers[3])) / 3
    assert qr["mean_score"] == pytest.approx(round(expected, 2))
    assert df.iloc[1]["name"] == "Turkish Airlines"


def test_summarize_empty_and_csv(tmp_path):
    result = summarize([])
    assert result.airports.empty
    assert result.airlines.empty

    paths = result.to_csv(str(tmp_path / "out"))
    assert [pathlib.Path(p).name for p in paths] == ["airports.csv", "airlines.csv"]
    assert (tmp_path / "out" / "airports.csv").read_text().startswith("airport,city")
