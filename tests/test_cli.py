import pandas as pd

from site_locator.cli import main


def test_locate_writes_positions(config_path, tmp_path, capsys):
    distances = tmp_path / "distances.csv"
    distances.write_text(
        "beacon_id,station_id,distance\n"
        "anna,beacon-east,90\n"
        "anna,beacon-west,120\n"
        "anna,beacon-south,80\n"
        "anna,beacon-north,nan\n"
        "ben,beacon-east,45\n"
        "ghost,beacon-east,10\n",
        encoding="utf-8",
    )
    output = tmp_path / "positions.csv"

    rc = main(["--config", str(config_path), "locate", "--distances", str(distances), "--output", str(output)])

    assert rc == 0
    df = pd.read_csv(output)
    assert list(df["beacon_id"]) == ["anna"]
    assert int(df.loc[0, "stations"]) == 3
    assert "anna" in capsys.readouterr().out


def test_replay_summarizes_events(config_path, tmp_path):
    events = tmp_path / "events.csv"
    events.write_text(
        "beacon_id,station_id,timestamp_ms\n"
        "anna,beacon-east,0\n"
        "anna,beacon-north,500000\n"
        "anna,beacon-east,800000\n"
        "anna,beacon-north,1200000\n"
        "anna,munich-break,1200000\n"
        "anna,munich-break,1800000\n"
        "ben,augsburg-a,0\n",
        encoding="utf-8",
    )
    output = tmp_path / "summary.csv"

    rc = main(["--config", str(config_path), "replay", "--events", str(events), "--output", str(output)])

    assert rc == 0
    df = pd.read_csv(output, dtype=str)
    assert list(df["beacon_id"]) == ["anna"]
    row = df.iloc[0]
    assert row["total"] == "00:30:00"
    assert row["break"] == "00:10:00"
    assert row["work"] == "00:20:00"
    assert row["first_start"] == "00:00"


def test_missing_input_returns_error(config_path, tmp_path):
    rc = main(["--config", str(config_path), "locate", "--distances", str(tmp_path / "missing.csv")])
    assert rc == 1
