# main.py - Blink rate monitor with camera, face mesh and on-screen effect
import argparse
import logging
import time

import cv2
import numpy as np

from config import load_config
from data_logger import DataLogger
from monitor import BlinkMonitor
from vision.face_mesh import FaceLandmarkSource

logger = logging.getLogger(__name__)

TARGET_RATE_STEP = 1


def get_args():
    p = argparse.ArgumentParser(description="Blink rate monitor")
    p.add_argument("--config", default="configs/default.yaml", help="Path to YAML configuration")
    p.add_argument("--target_rate", type=float, default=None, help="Override alerts.target_rate (BPM)")
    p.add_argument("--effect", choices=["pulse", "sustained"], default=None)
    p.add_argument("--no_event_log", action="store_true", help="Disable the CSV event log")
    return p.parse_args()


def apply_effect(frame, signal):
    """
    Present the alert signal on the frame

    Args:
        frame: BGR frame to draw on
        signal: {'visible': bool, 'effect_kind': 'pulse' | 'sustained'}

    Returns:
        numpy.ndarray: Frame with the effect applied
    """
    if not signal['visible']:
        return frame
    if signal['effect_kind'] == 'sustained':
        return cv2.GaussianBlur(frame, (31, 31), 0)
    white = np.full_like(frame, 255)
    return cv2.addWeighted(frame, 0.2, white, 0.8, 0)


class BlinkMonitorApp:
    """
    Camera loop around a BlinkMonitor session
    Provides the landmark source, the stats dashboard and the effect overlay
    """

    def __init__(self, config_path="configs/default.yaml", event_log=True):
        self.config = load_config(config_path)

        logging_config = self.config['logging']
        event_logger = None
        if event_log and logging_config.get('event_log', True):
            event_logger = DataLogger(logging_config.get('log_dir', 'logs'))

        self.monitor = BlinkMonitor(self.config, event_logger=event_logger)
        self.landmark_source = FaceLandmarkSource(self.config)
        self.last_landmarks = None

    def process_frame(self, frame):
        """
        Run one camera frame through the session

        Returns:
            tuple: (results_dict, display_frame)
        """
        if self.config['camera']['mirror_effect']:
            display_frame = cv2.flip(frame, 1)
        else:
            display_frame = frame.copy()

        landmarks = self.landmark_source.process_frame(display_frame)
        self.last_landmarks = landmarks
        results = self.monitor.process_frame(landmarks)
        return results, display_frame

    def draw_dashboard(self, frame, results):
        """
        Draw the blink statistics panel

        Args:
            frame: Frame to use for dimensions
            results: Processing results from the session

        Returns:
            numpy.ndarray: Dashboard image
        """
        height = frame.shape[0]
        dashboard_width = self.config['display']['dashboard_width']
        colors = self.config['display']['colors']

        dashboard = np.zeros((height, dashboard_width, 3), dtype=np.uint8)
        dashboard[:] = colors['background']

        rates = results['rates']
        alert = results['alert']
        rate_color = colors['rate_good'] if rates['current_rate'] >= alert['target_rate'] else colors['rate_low']

        y = 40
        cv2.putText(dashboard, "BLINK MONITOR", (20, y),
                    cv2.FONT_HERSHEY_DUPLEX, 0.8, colors['text_primary'], 2)
        y += 50
        rows = [
            (f"CURRENT: {rates['current_rate']} BPM", rate_color),
            (f"AVERAGE: {rates['average_rate']:.0f} BPM", colors['text_primary']),
            (f"SESSION: {rates['session_duration']}", colors['text_primary']),
            (f"TOTAL BLINKS: {rates['total_blinks']}", colors['text_secondary']),
            (f"TARGET: {alert['target_rate']:.0f} BPM", colors['text_secondary']),
            (f"ALERT: {alert['state']} ({alert['effect_kind']})", colors['text_secondary']),
        ]
        eyes = results['eyes']
        if eyes.get('eyes_detected'):
            rows.append((f"EAR: {eyes['smoothed_ear']:.3f}", colors['text_secondary']))
        else:
            rows.append(("EYES: NOT DETECTED", colors['rate_low']))

        for text, color in rows:
            cv2.putText(dashboard, text, (20, y), cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 1)
            y += 30
        return dashboard

    def print_config(self):
        blinks = self.monitor.config['blinks']
        alerts = self.monitor.config['alerts']
        print("\nCurrent Configuration:")
        print(f"  Blinks: close={blinks['close_threshold']}, reopen buffer={blinks['reopen_buffer']}, "
              f"min interval={blinks['min_interval_s']}s, confirmation={blinks['confirmation_delay_s']}s")
        print(f"  Alerts: target={self.monitor.alerts.target_rate} BPM, "
              f"sustained={alerts['sustained_below_s']}s, grace={alerts['startup_grace_s']}s, "
              f"effect={self.monitor.alerts.effect_kind}")

    def handle_key(self, key):
        """Returns False when the app should quit"""
        if key == ord('q'):
            return False
        if key == ord('r'):
            self.monitor.reset()
            print("Session reset!")
        elif key == ord('e'):
            kind = 'sustained' if self.monitor.alerts.effect_kind == 'pulse' else 'pulse'
            self.monitor.set_effect_kind(kind)
            print(f"Effect: {kind}")
        elif key in (ord('+'), ord('=')):
            self.monitor.set_target_rate(self.monitor.alerts.target_rate + TARGET_RATE_STEP)
        elif key == ord('-'):
            self.monitor.set_target_rate(max(0, self.monitor.alerts.target_rate - TARGET_RATE_STEP))
        elif key == ord('s'):
            self.print_config()
        return True

    def cleanup(self):
        self.monitor.stop()
        self.landmark_source.cleanup()


def main():
    args = get_args()
    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = BlinkMonitorApp(args.config, event_log=not args.no_event_log)
    logging.getLogger().setLevel(app.config['logging'].get('level', 'INFO'))
    if args.target_rate is not None:
        app.monitor.set_target_rate(args.target_rate)
    if args.effect is not None:
        app.monitor.set_effect_kind(args.effect)

    camera_config = app.config['camera']
    cap = cv2.VideoCapture(camera_config['index'])
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, camera_config['width'])
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, camera_config['height'])
    cap.set(cv2.CAP_PROP_FPS, camera_config['fps'])
    if not cap.isOpened():
        logger.error("Could not open camera %s", camera_config['index'])
        app.cleanup()
        return

    print("Starting Blink Rate Monitor")
    print("\nControls:")
    print("  'q' - Quit application")
    print("  'r' - Reset session")
    print("  'e' - Toggle effect (pulse / sustained)")
    print("  '+'/'-' - Adjust target BPM")
    print("  's' - Show configuration values")

    start_time = time.time()
    try:
        while True:
            ret, frame = cap.read()
            if not ret:
                logger.error("Failed to capture frame from camera")
                break

            results, display_frame = app.process_frame(frame)
            if results is None:
                continue

            if app.config['display']['show_landmarks'] and app.last_landmarks is not None:
                app.landmark_source.draw_eye_landmarks(
                    display_frame, app.last_landmarks,
                    [app.monitor.geometry.left_indices, app.monitor.geometry.right_indices],
                    tuple(app.config['display']['colors']['landmarks']))

            display_frame = apply_effect(display_frame, results['alert'])
            dashboard = app.draw_dashboard(display_frame, results)
            combined = np.hstack([display_frame, dashboard])

            if app.config['display']['show_fps']:
                elapsed_time = time.time() - start_time
                fps = results['frame_count'] / elapsed_time if elapsed_time > 0 else 0
                cv2.putText(combined, f"Frame: {results['frame_count']} | FPS: {fps:.1f}",
                            (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 1)

            cv2.imshow('Blink Rate Monitor', combined)
            if not app.handle_key(cv2.waitKey(1) & 0xFF):
                break
    except KeyboardInterrupt:
        print("Monitor interrupted by user")
    finally:
        stats = app.monitor.stats()
        cap.release()
        cv2.destroyAllWindows()
        app.cleanup()
        print("\nSession Statistics:")
        print(f"  Duration: {stats['session_duration']}")
        print(f"  Total blinks: {stats['total_blinks']}")
        print(f"  Average rate: {stats['average_rate']:.1f} BPM")
        print(f"  Alerts shown: {app.monitor.alerts.alert_count}")


if __name__ == "__main__":
    main()
