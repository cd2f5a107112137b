# tests/test_thresholds.py
"""
Test tank status classification.

Verifies the status bands, water precedence and reading parsing.
"""

import pytest

from fuelogic.errors import ValidationError
from fuelogic.tanks import TankReading, TankStatus, ThresholdConfig, classify, classify_percent, summarize
from fuelogic.tanks.models import format_measurement_date

from conftest import tank

DEFAULTS = ThresholdConfig()


def reading(**kwargs) -> TankReading:
    return TankReading.from_telemetry(tank(1, **kwargs))


class TestClassification:
    """Tests for classify()."""

    def test_water_overrides_full_tank(self):
        """A full tank with water is ALERTA."""
        r = reading(water=0.5, current=10000.0, capacity=10000.0)
        assert classify(r, DEFAULTS) is TankStatus.ALERTA

    def test_water_overrides_critical_level(self):
        """Water wins over a critical fill level too."""
        r = reading(water=12.0, current=500.0)
        assert classify(r, DEFAULTS) is TankStatus.ALERTA

    def test_bands_with_default_thresholds(self):
        """15% -> critico, 35% -> atencao, 80% -> operacional."""
        assert classify(reading(current=1500.0), DEFAULTS) is TankStatus.CRITICO
        assert classify(reading(current=3500.0), DEFAULTS) is TankStatus.ATENCAO
        assert classify(reading(current=8000.0), DEFAULTS) is TankStatus.OPERACIONAL

    def test_band_boundaries(self):
        """Thresholds are exclusive upper bounds of the lower band."""
        assert classify_percent(19.99, DEFAULTS) is TankStatus.CRITICO
        assert classify_percent(20.0, DEFAULTS) is TankStatus.ATENCAO
        assert classify_percent(49.99, DEFAULTS) is TankStatus.ATENCAO
        assert classify_percent(50.0, DEFAULTS) is TankStatus.OPERACIONAL

    def test_custom_thresholds(self):
        """Bands follow the configured thresholds."""
        config = ThresholdConfig(critical_percent=10.0, attention_percent=30.0)
        assert classify(reading(current=1500.0), config) is TankStatus.ATENCAO
        assert classify(reading(current=3500.0), config) is TankStatus.OPERACIONAL

    def test_zero_capacity_rejected(self):
        """Fill level of a tank without capacity is undefined."""
        with pytest.raises(ValidationError) as exc_info:
            classify(reading(capacity=0), DEFAULTS)
        assert exc_info.value.field == "capacity"

    def test_zero_capacity_with_water_is_alerta(self):
        """Water is decided before the fill level is needed."""
        assert classify(reading(capacity=0, water=3.0), DEFAULTS) is TankStatus.ALERTA

    def test_summarize_counts_every_status(self):
        """Every status key is present, even with zero tanks."""
        readings = [
            reading(water=1.0),
            reading(current=1000.0),
            reading(current=1000.0),
            reading(current=9000.0),
        ]
        counts = summarize(readings, DEFAULTS)

        assert counts == {"alerta": 1, "critico": 2, "atencao": 0, "operacional": 1}
        assert summarize([], DEFAULTS) == {s.value: 0 for s in TankStatus}


class TestThresholdConfig:
    """Tests for ThresholdConfig.validate()."""

    @pytest.mark.parametrize("critical,attention,field", [
        (50.0, 50.0, "threshold_critico"),
        (60.0, 40.0, "threshold_critico"),
        (-1.0, 50.0, "threshold_critico"),
        (20.0, 101.0, "threshold_atencao"),
    ])
    def test_invalid_configs(self, critical, attention, field):
        """Values outside [0, 100] or critical >= attention are refused."""
        with pytest.raises(ValidationError) as exc_info:
            ThresholdConfig(critical_percent=critical, attention_percent=attention).validate()
        assert exc_info.value.field == field

    def test_extremes_accepted(self):
        """0 and 100 are valid bounds."""
        config = ThresholdConfig(critical_percent=0.0, attention_percent=100.0)
        assert config.validate() is config


class TestTankReading:
    """Tests for telemetry parsing."""

    def test_telemetry_names(self):
        """Poller field names map onto the reading."""
        r = TankReading.from_telemetry(tank(6, water=29.6, Extra="kept"))

        assert r.tank_id == "6"
        assert r.station_id == "776"
        assert r.station_name == "POSTO SLING 2"
        assert r.water_amount == 29.6
        assert r.has_water
        assert r.fill_percent == pytest.approx(80.0)
        assert r.raw["Extra"] == "kept"

    def test_snake_case_names(self):
        """snake_case names are accepted as well."""
        r = TankReading.from_telemetry({
            "tank_id": "T-9",
            "current_volume": 250,
            "capacity": 1000,
            "water_amount": 0,
        })
        assert r.tank_id == "T-9"
        assert not r.has_water
        assert r.fill_percent == pytest.approx(25.0)

    def test_missing_tank_id(self):
        with pytest.raises(ValidationError) as exc_info:
            TankReading.from_telemetry({"QuantidadeDeAgua": 1.0})
        assert exc_info.value.field == "Tanque"

    def test_non_numeric_water(self):
        with pytest.raises(ValidationError) as exc_info:
            TankReading.from_telemetry(tank(1, water="muita"))
        assert exc_info.value.field == "QuantidadeDeAgua"

    def test_measurement_date_format(self):
        """ISO dates render as dd/mm/yyyy; anything else passes through."""
        assert format_measurement_date("2025-06-01T10:00:00Z") == "01/06/2025"
        assert format_measurement_date("ontem") == "ontem"
        assert format_measurement_date(None) is None
