"""Tests for GPU inventory parsing and nvidia-smi merging."""

import pytest

from sysgauge.collectors.gpu import (
    NVIDIA_SMI_COMMAND,
    GpuProbe,
    LspciGpuProbe,
    WindowsGpuProbe,
    apply_nvidia_smi,
    parse_lspci_gpus,
    parse_windows_gpus,
)
from sysgauge.models import Gpu, GpuUtilization

RTX = "NVIDIA GeForce RTX 3050 Laptop GPU"


class TestParseLspci:
    def test_golden(self, fixture_text):
        gpus = parse_lspci_gpus(fixture_text("lspci_vmm.txt"))
        assert gpus == [
            Gpu(
                id="00:02.0",
                name="Alder Lake-P GT2 [Iris Xe Graphics]",
                status="ok",
                vendor="Intel Corporation",
                driver="i915",
            ),
            Gpu(
                id="01:00.0",
                name=RTX,
                status="ok",
                vendor="NVIDIA Corporation",
                driver="nvidia",
            ),
        ]


class TestParseWindows:
    def test_golden(self, fixture_text):
        gpus = parse_windows_gpus(fixture_text("win32_video_controller.txt"))
        assert [g.name for g in gpus] == ["Intel(R) Iris(R) Xe Graphics", RTX]
        intel = gpus[0]
        assert intel.status == "ok"
        assert intel.id.startswith("PCI\\VEN_8086")
        assert intel.processor == "Intel(R) Iris(R) Xe Graphics Family"
        assert intel.driver_version == "31.0.101.4972"
        assert intel.memory == 4293918720


class TestNvidiaSmiMerge:
    def test_merges_by_name(self, fixture_text):
        gpus = parse_lspci_gpus(fixture_text("lspci_vmm.txt"))
        apply_nvidia_smi(gpus, fixture_text("nvidia_smi.csv"))
        assert len(gpus) == 2
        rtx = gpus[1]
        assert rtx.id == "01:00.0"
        assert rtx.driver == "nvidia"
        assert rtx.index == 0
        assert rtx.display_attached is False
        assert rtx.display_active is False
        assert rtx.memory == 4096 * 1024 * 1024
        assert rtx.utilization == GpuUtilization(
            processing=0.37, memory=0.12, temperature=54.0, power_draw=11.52
        )
        assert gpus[0].utilization is None

    def test_unmatched_row_appends(self):
        gpus = [Gpu(id="0000:03:00.0", name="X")]
        apply_nvidia_smi(gpus, "0, Y, Enabled, Yes, 30, 8192, 5, 1, 40, 50, 20.0\n")
        assert [g.name for g in gpus] == ["X", "Y"]
        added = gpus[1]
        assert added.id == "Y"
        assert added.display_attached is True
        assert added.display_active is True
        assert added.utilization.fan_speed == 0.3
        assert added.utilization.memory_temperature == 50.0

    def test_identical_names_merge_in_order(self):
        gpus = [Gpu(id="a", name="X"), Gpu(id="b", name="X")]
        apply_nvidia_smi(gpus, "0, X, No, No, , , 10, , , , \n1, X, No, No, , , 20, , , , \n")
        assert [g.index for g in gpus] == [0, 1]
        assert [g.utilization.processing for g in gpus] == [0.1, 0.2]

    def test_extra_row_for_same_name_appends(self):
        gpus = [Gpu(id="a", name="X")]
        apply_nvidia_smi(gpus, "0, X\n1, X\n")
        assert [g.id for g in gpus] == ["a", "X"]

    def test_fractions_in_range(self, fixture_text):
        gpus = apply_nvidia_smi([], fixture_text("nvidia_smi.csv"))
        utilization = gpus[0].utilization
        for value in (utilization.processing, utilization.memory):
            assert 0.0 <= value <= 1.0

    def test_blank_output(self):
        assert apply_nvidia_smi([], "\n\n") == []


class TestGpuProbes:
    @pytest.mark.asyncio
    async def test_linux(self, fake_runner, fixture_text):
        runner = fake_runner({
            "lspci": fixture_text("lspci_vmm.txt"),
            "nvidia-smi": fixture_text("nvidia_smi.csv"),
        })
        gpus = (await LspciGpuProbe(runner=runner).collect()).value
        assert len(gpus) == 2
        assert gpus[1].utilization.power_draw == 11.52
        assert runner.calls == ["lspci -vmm -k", NVIDIA_SMI_COMMAND]

    @pytest.mark.asyncio
    async def test_windows(self, fake_runner, fixture_text):
        runner = fake_runner({
            "powershell": fixture_text("win32_video_controller.txt"),
            "nvidia-smi": fixture_text("nvidia_smi.csv"),
        })
        gpus = (await WindowsGpuProbe(runner=runner).collect()).value
        assert gpus[1].memory == 4096 * 1024 * 1024
        assert gpus[1].processor == RTX

    @pytest.mark.asyncio
    async def test_no_tools(self, fake_runner):
        assert (await LspciGpuProbe(runner=fake_runner()).collect()).value == []

    @pytest.mark.asyncio
    async def test_fallback_uses_nvidia_smi_only(self, fake_runner, fixture_text):
        runner = fake_runner({"nvidia-smi": fixture_text("nvidia_smi.csv")})
        gpus = (await GpuProbe(runner=runner).collect()).value
        assert [g.id for g in gpus] == [RTX]
