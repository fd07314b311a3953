from subprobe.app import main

raise SystemExit(main())
