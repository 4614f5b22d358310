# Shows the first frame of a video (or a camera snapshot); click two points a
# known real-world distance apart and get the pixel_to_meter value to put into
# the kinematics section of the session config.
import argparse
import math
import sys

import cv2


def pick_two_points(frame):
    points = []

    def click_event(event, x, y, flags, param):
        if event == cv2.EVENT_LBUTTONDOWN and len(points) < 2:
            points.append((x, y))
            cv2.circle(frame, (x, y), 5, (0, 255, 0), -1)
            if len(points) == 2:
                cv2.line(frame, points[0], points[1], (255, 0, 0), 2)

    cv2.namedWindow("Calibrate")
    cv2.setMouseCallback("Calibrate", click_event)
    print("Click two points a known distance apart. Esc aborts, 'q' confirms.")
    while True:
        cv2.imshow("Calibrate", frame)
        key = cv2.waitKey(20) & 0xFF
        if key == 27:
            cv2.destroyAllWindows()
            return None
        if key == ord("q") and len(points) == 2:
            break
    cv2.destroyAllWindows()
    return points


def main():
    p = argparse.ArgumentParser(description="Estimate kinematics.pixel_to_meter from a reference distance.")
    p.add_argument("source", help="Video file path or camera index.")
    p.add_argument("--meters", type=float, required=True, help="Real distance between the two points.")
    args = p.parse_args()

    source = int(args.source) if args.source.isdigit() else args.source
    cap = cv2.VideoCapture(source)
    ok, frame = cap.read()
    cap.release()
    if not ok:
        print(f"Failed to read a frame from: {args.source}")
        sys.exit(1)

    points = pick_two_points(frame)
    if points is None:
        print("Aborted.")
        sys.exit(0)

    (x1, y1), (x2, y2) = points
    pixels = math.hypot(x2 - x1, y2 - y1)
    if pixels == 0:
        print("The two points are identical.")
        sys.exit(1)

    print(f"distance: {pixels:.1f} px for {args.meters} m")
    print("kinematics:")
    print(f"  pixel_to_meter: {args.meters / pixels:.5f}")


if __name__ == "__main__":
    main()
