import matplotlib.pyplot as plt
import numpy as np

from armanoise.arma.fitting import fit_arma
from armanoise.arma.model import ARMAModel
from armanoise.arma.noise import generate_noise
from armanoise.math.correlation.fft_based import estimate_covariance


def main() -> None:
    """Compare a true ARMA(2, 2) spectrum with one fitted from simulated noise."""
    truth = ARMAModel.from_roots([1.5, -3.0], [1.1 + 0.5j, 1.1 - 0.5j], 1.0)
    x = generate_noise(truth, 2**16, rng=1)

    covariance = estimate_covariance(x, n_lags=300, detrend="mean")
    fitted = fit_arma(covariance, p=truth.p, q=truth.q)

    freqs = np.linspace(0, 0.5, 512)
    # periodogram, averaged over 64 segments
    segments = x.reshape(64, -1)
    periodogram = np.mean(np.abs(np.fft.rfft(segments, axis=1)) ** 2, axis=0) / segments.shape[1]
    seg_freqs = np.fft.rfftfreq(segments.shape[1])

    plt.semilogy(seg_freqs, periodogram, color="0.7", label="periodogram")
    plt.semilogy(freqs, truth.psd(freqs), label="true model")
    plt.semilogy(freqs, fitted.psd(freqs), "--", label=f"fitted ARMA({fitted.p}, {fitted.q})")
    plt.xlabel("Frequency [cycles/sample]")
    plt.ylabel("PSD")
    plt.legend()
    plt.show()


if __name__ == "__main__":
    main()
