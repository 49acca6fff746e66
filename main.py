# main.py
"""
Main entry point for the Galaxy Generator.

This script orchestrates the entire application lifecycle:
1. Loads configuration from `config.json`.
2. Initializes the logging system.
3. Builds the galaxy parameters, random source, scene and generator.
4. Runs the render loop, regenerating the galaxy when an edit settles.
5. Handles clean shutdown.
"""
import logging
from utils import setup_logging, load_config
import cProfile
import pstats
import io


def main():
    """
    The main function to run the galaxy viewer.
    """
    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config('config.json')
    except Exception as e:
        print(f"FATAL: Could not load config.json. Error: {e}")
        return

    setup_logging(config)

    logging.info("--- Galaxy Generator Starting ---")

    galaxy_params = config.get('galaxy', {})
    run_params = config.get('run_control', {})
    vis_params = config.get('visualization', {})

    from galaxy import ParameterSet, InvalidParameterError
    from random_source import SeededRandomSource
    from generator import GalaxyGenerator
    from visualization import Visualizer

    # --- Component Initialization ---
    try:
        params = ParameterSet.from_config(galaxy_params)
        params.validate()
    except InvalidParameterError as e:
        logging.critical(f"Configuration error in 'galaxy' section: {e}")
        return

    rng = SeededRandomSource(run_params.get('seed'))
    visualizer = Visualizer(params, vis_params)
    generator = GalaxyGenerator(visualizer, rng)
    generator.regenerate(params)

    profiler = cProfile.Profile()

    log_throttle = run_params.get('log_throttle_frames', 300)
    max_frames = run_params.get('max_frames')  # None runs until the window closes

    running = True
    frame_num = 0

    profiler.enable()
    while running:
        edited = visualizer.poll_parameter_edit()
        if edited is not None:
            try:
                generator.regenerate(edited)
                params = edited
            except InvalidParameterError as e:
                logging.error(f"Keeping the previous galaxy: {e}")
                visualizer.set_parameters(params)

        if not visualizer.draw(generator):
            running = False
        frame_num += 1

        # Hot loops must throttle logs
        if frame_num % log_throttle == 0:
            logging.info(f"Frame {frame_num}, galaxy generation {generator.generation}")
            logging.debug(f"Frame {frame_num} | FPS: {visualizer.clock.get_fps():.1f}")

        if max_frames is not None and frame_num >= max_frames:
            logging.info(f"Reached max_frames ({max_frames}). Stopping.")
            running = False
    profiler.disable()

    generator.dispose()
    visualizer.close()
    logging.info("Render loop finished.")

    logging.info("--- Performance Profile ---")
    s = io.StringIO()
    # Sort by cumulative time spent in the function
    stats = pstats.Stats(profiler, stream=s).sort_stats('cumtime')
    stats.print_stats(20)
    logging.info(f"\n{s.getvalue()}")

    logging.info("--- Galaxy Generator Shutting Down ---")


if __name__ == "__main__":
    main()
