import matplotlib

matplotlib.use("Agg")

from daisy_sim.utils.visualization import plot_transmissions, save_chain_visualization


def test_save_chain_visualization(sim, tmp_path):
    sim.start_token_passing()
    sim.set_power(3, False)
    sim.set_link_broken(0, True)
    filename = tmp_path / "plots" / "chain.png"
    save_chain_visualization(sim, str(filename))
    assert filename.exists()


def test_plot_transmissions(sim, tmp_path):
    sim.engine.send(1, 4)
    sim.env.run()
    sim.engine.send(2, 2)
    filename = tmp_path / "transmissions.png"
    plot_transmissions(sim, str(filename))
    assert filename.exists()


def test_plot_transmissions_without_data(sim, tmp_path):
    filename = tmp_path / "empty.png"
    plot_transmissions(sim, str(filename))
    assert filename.exists()
